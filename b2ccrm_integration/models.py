"""Data models for the b2c-crm-sync integration harness."""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

CRM_ACCOUNT_REFERENCE = "c_b2ccrm_accountId"
CRM_CONTACT_REFERENCE = "c_b2ccrm_contactId"


class CustomerCredentials(BaseModel):
    """OCAPI customer node of a registration request."""

    model_config = ConfigDict(extra="allow")

    login: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class CustomerRegistration(BaseModel):
    """OCAPI Shop API customer registration body."""

    model_config = ConfigDict(extra="allow")

    customer: CustomerCredentials
    password: str


class CustomerProfilePatch(BaseModel):
    """OCAPI Data API customer patch body."""

    model_config = ConfigDict(extra="allow")

    job_title: Optional[str] = None
    phone_home: Optional[str] = None


class GuestAuthResult(BaseModel):
    """Result of a guest authentication against the Shop API."""

    status: int
    auth_token: str = Field(alias="authToken")
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


class OCAPIResponse(BaseModel):
    """Status and payload of an OCAPI customer request."""

    status: int
    data: Dict[str, Any] = Field(default_factory=dict)
    auth_token: Optional[str] = Field(default=None, alias="authToken")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def customer_no(self) -> Optional[str]:
        return self.data.get("customer_no")

    @property
    def has_crm_references(self) -> bool:
        """Check if the profile carries both CRM back-references."""
        return CRM_ACCOUNT_REFERENCE in self.data and CRM_CONTACT_REFERENCE in self.data


class SFDCContact(BaseModel):
    """Salesforce Contact fields compared against a B2C profile."""

    id: str = Field(alias="Id")
    account_id: Optional[str] = Field(default=None, alias="AccountId")
    email: Optional[str] = Field(default=None, alias="Email")
    b2c_customer_id: Optional[str] = Field(default=None, alias="B2C_Customer_ID__c")
    b2c_job_title: Optional[str] = Field(default=None, alias="B2C_Job_Title__c")
    home_phone: Optional[str] = Field(default=None, alias="HomePhone")
    success: bool = True

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SFDCAuthCredentials(BaseModel):
    """Salesforce session and the connection bound to it."""

    access_token: str
    instance_url: str
    conn: Any = None


class MultiCloudInitResults(BaseModel):
    """Credentials shared by every scenario of a suite run."""

    b2c_admin_auth_token: str
    sfdc_auth_credentials: SFDCAuthCredentials


class UseCaseInitResults(BaseModel):
    """Outcome of use-case initialisation."""

    multi_cloud_init_results: MultiCloudInitResults
    purged_customers: int = 0
