"""Configuration management for the b2c-crm-sync integration harness."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

DEFAULT_TEST_DATA = Path(__file__).parent / "data" / "test_data.json"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read a variable, preferring the B2CCRM_ prefixed name."""
    return os.getenv(f"B2CCRM_{name}") or os.getenv(name) or default


@dataclass
class RuntimeEnvironment:
    """Connection parameters for the B2C Commerce and Salesforce instances."""

    b2c_hostname: str
    b2c_client_id: str
    b2c_client_secret: str
    sfdc_username: str
    sfdc_password: str
    sfdc_client_id: str
    sfdc_client_secret: str
    sfdc_security_token: str = ""
    sfdc_login_url: str = "https://login.salesforce.com"
    sfdc_api_version: str = "52.0"
    b2c_ocapi_version: str = "v21_3"
    b2c_am_url: str = "https://account.demandware.com/dw/oauth2/access_token"
    http_timeout: float = 30.0

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "RuntimeEnvironment":
        """Load the runtime environment from environment variables.

        Args:
            env_file: Optional path to .env file. If not provided, looks for
                     .env in the current working directory.

        Returns:
            RuntimeEnvironment instance with loaded configuration.

        Raises:
            ValueError: If required environment variables are missing.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            env_path = Path.cwd() / ".env"
            if env_path.exists():
                load_dotenv(env_path)

        required = {
            "b2c_hostname": "B2C_HOSTNAME",
            "b2c_client_id": "B2C_CLIENT_ID",
            "b2c_client_secret": "B2C_CLIENT_SECRET",
            "sfdc_username": "SFDC_USERNAME",
            "sfdc_password": "SFDC_PASSWORD",
            "sfdc_client_id": "SFDC_CLIENT_ID",
            "sfdc_client_secret": "SFDC_CLIENT_SECRET",
        }
        values = {attr: _getenv(name) for attr, name in required.items()}

        missing = [name for attr, name in required.items() if not values[attr]]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        optional = {
            "sfdc_security_token": "SFDC_SECURITY_TOKEN",
            "sfdc_login_url": "SFDC_LOGIN_URL",
            "sfdc_api_version": "SFDC_API_VERSION",
            "b2c_ocapi_version": "B2C_OCAPI_VERSION",
            "b2c_am_url": "B2C_AM_URL",
        }
        for attr, name in optional.items():
            value = _getenv(name)
            if value:
                values[attr] = value

        timeout = _getenv("HTTP_TIMEOUT")
        if timeout:
            values["http_timeout"] = float(timeout)

        return cls(**values)

    @property
    def b2c_base_url(self) -> str:
        """Get the storefront base URL."""
        return f"https://{self.b2c_hostname}"

    def shop_url(self, site_id: str, path: str) -> str:
        """Get an OCAPI Shop API path for a site."""
        return f"/s/{site_id}/dw/shop/{self.b2c_ocapi_version}{path}"

    def data_url(self, path: str) -> str:
        """Get an OCAPI Data API path."""
        return f"/s/-/dw/data/{self.b2c_ocapi_version}{path}"

    def customer_url(self, customer_list_id: str, customer_no: str) -> str:
        """Get the Data API customer URL for a specific customer."""
        return self.data_url(f"/customer_lists/{customer_list_id}/customers/{customer_no}")

    def customer_search_url(self, customer_list_id: str) -> str:
        """Get the Data API customer search URL."""
        return self.data_url(f"/customer_lists/{customer_list_id}/customer_search")

    def site_preferences_url(self, site_id: str, group_id: str, instance_type: str) -> str:
        """Get the Data API site preference group URL."""
        return self.data_url(
            f"/sites/{site_id}/site_preferences/preference_groups/{group_id}/{instance_type}"
        )

    @property
    def sfdc_token_url(self) -> str:
        """Get the Salesforce OAuth2 token URL."""
        return f"{self.sfdc_login_url}/services/oauth2/token"


def get_runtime_environment(env_file: Optional[str] = None) -> RuntimeEnvironment:
    """Resolve the runtime environment used by the use-case tests."""
    return RuntimeEnvironment.from_env(env_file)


@dataclass
class ScenarioData:
    """Test data driving the authentication scenarios."""

    sleep_timeout: float
    customer_list_id: str
    site_customer_lists: Dict[str, str]
    profile_template: Dict[str, Any]
    update_template: Dict[str, Any]
    scenario_timeout: float = 30.0
    verify_login_reconciliation: bool = False

    @classmethod
    def load(cls, path: Optional[str] = None) -> "ScenarioData":
        """Load test data from a JSON file, applying environment overrides.

        Raises:
            ValueError: If the customer list has no site mapping.
        """
        source = Path(path) if path else DEFAULT_TEST_DATA
        with source.open(encoding="utf-8") as f:
            raw = json.load(f)

        sleep_timeout = os.getenv("B2CCRM_SLEEP_TIMEOUT")
        customer_list = os.getenv("B2CCRM_CUSTOMER_LIST")

        data = cls(
            sleep_timeout=float(sleep_timeout or raw["sleepTimeout"]),
            customer_list_id=str(customer_list or raw["b2cCustomerList"]),
            site_customer_lists=dict(raw["b2cSiteCustomerLists"]),
            profile_template=raw["profileTemplate"],
            update_template=raw["updateTemplate"],
            scenario_timeout=float(raw.get("scenarioTimeout", 30)),
            verify_login_reconciliation=bool(raw.get("verifyLoginReconciliation", False)),
        )
        if data.customer_list_id not in data.site_customer_lists:
            raise ValueError(
                f"No site mapped to customer list '{data.customer_list_id}'"
            )
        return data

    @property
    def site_id(self) -> str:
        """Site bound to the configured customer list."""
        return self.site_customer_lists[self.customer_list_id]

    @property
    def purge_sleep_timeout(self) -> float:
        """Pause enforced before purging, half the propagation pause."""
        return self.sleep_timeout / 2

    @property
    def test_email(self) -> str:
        """Email address shared by every registered test profile."""
        return self.profile_template["customer"]["email"]
