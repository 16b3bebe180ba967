"""Use-case helpers shared by the multi-cloud scenarios.

Covers suite initialisation (auth tokens, feature toggles, legacy test-data
purge), the b2c-crm-sync feature switch, fixed-duration pauses for platform
event propagation, and teardown of the customers a scenario created.
"""

import logging
import time
from typing import Callable, Iterable, Optional

import httpx

from .config import RuntimeEnvironment, ScenarioData
from .data_api import DataAPIClient
from .models import (
    CRM_ACCOUNT_REFERENCE,
    CRM_CONTACT_REFERENCE,
    MultiCloudInitResults,
    SFDCContact,
    UseCaseInitResults,
)
from .sobject_api import SObjectClient

logger = logging.getLogger(__name__)

SYNC_PREFERENCE_GROUP = "b2ccrmsync"
SYNC_INSTANCE_TYPE = "development"

SYNC_ENABLED_PREFERENCES = {
    "c_b2ccrm_syncIsEnabled": True,
    "c_b2ccrm_syncCustomersEnabled": True,
    "c_b2ccrm_syncCustomersOnLoginEnabled": True,
    "c_b2ccrm_syncCustomersOnLoginOnceEnabled": False,
    "c_b2ccrm_syncCustomersViaOCAPI": True,
}

SYNC_DISABLED_PREFERENCES = {
    "c_b2ccrm_syncIsEnabled": False,
}


def _soql_literal(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class UseCaseProcesses:
    """Setup and teardown helpers for the b2c-crm-sync use-case tests."""

    def __init__(
        self,
        environment: RuntimeEnvironment,
        data: ScenarioData,
        data_api: Optional[DataAPIClient] = None,
        sfdc_client: Optional[httpx.Client] = None,
        sleeper: Callable[[float], None] = time.sleep,
    ):
        """Initialize the use-case helpers.

        Args:
            environment: Runtime environment to target.
            data: Test data (customer list, profile template).
            data_api: Data API client. Created from the environment if not provided.
            sfdc_client: HTTP client used for the Salesforce session.
            sleeper: Callable performing the timed pauses.
        """
        self.environment = environment
        self.data = data
        self.data_api = data_api or DataAPIClient(environment)
        self._sfdc_client = sfdc_client
        self._sleeper = sleeper

    def init_use_case_tests(self, site_id: str) -> UseCaseInitResults:
        """Authenticate against both clouds and purge legacy test data."""
        logger.info(f"Initializing use-case tests for site {site_id}")

        b2c_admin_auth_token = self.data_api.get_admin_token()
        sfdc_auth_credentials = SObjectClient.login(self.environment, client=self._sfdc_client)

        self.b2c_crm_sync_disable(b2c_admin_auth_token, site_id)
        purged = self.b2c_customer_purge(b2c_admin_auth_token, sfdc_auth_credentials.conn)

        return UseCaseInitResults(
            multi_cloud_init_results=MultiCloudInitResults(
                b2c_admin_auth_token=b2c_admin_auth_token,
                sfdc_auth_credentials=sfdc_auth_credentials,
            ),
            purged_customers=purged,
        )

    def b2c_crm_sync_enable(self, token: str, site_id: str) -> None:
        """Enable b2c-crm-sync, including sync-on-login, for a site."""
        self.data_api.site_preferences_patch(
            token, site_id, SYNC_PREFERENCE_GROUP, SYNC_INSTANCE_TYPE, SYNC_ENABLED_PREFERENCES
        )
        logger.info(f"b2c-crm-sync enabled for {site_id}")

    def b2c_crm_sync_disable(self, token: str, site_id: str) -> None:
        """Disable b2c-crm-sync for a site."""
        self.data_api.site_preferences_patch(
            token, site_id, SYNC_PREFERENCE_GROUP, SYNC_INSTANCE_TYPE, SYNC_DISABLED_PREFERENCES
        )
        logger.info(f"b2c-crm-sync disabled for {site_id}")

    def sleep(self, seconds: float) -> None:
        """Pause to let asynchronous platform events propagate."""
        logger.debug(f"Sleeping {seconds}s for platform event propagation")
        self._sleeper(seconds)

    def b2c_customer_purge_by_customer_no(
        self,
        token: str,
        conn: SObjectClient,
        customer_no: Optional[str],
    ) -> None:
        """Delete a B2C customer and the Contact / Account it is mapped to."""
        if customer_no is None:
            logger.debug("No registered customer to purge")
            return

        try:
            profile = self.data_api.customer_get(token, self.data.customer_list_id, customer_no)
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                raise
            logger.debug(f"Customer {customer_no} not found; nothing to purge")
            return

        self._purge_crm_records(
            conn,
            [profile.data.get(CRM_CONTACT_REFERENCE)],
            [profile.data.get(CRM_ACCOUNT_REFERENCE)],
        )
        self.data_api.customer_delete(token, self.data.customer_list_id, customer_no)
        logger.info(f"Purged B2C customer {customer_no}")

    def b2c_customer_purge(self, token: str, conn: SObjectClient) -> int:
        """Delete every B2C customer and CRM Contact created from the test profile.

        Returns:
            Number of B2C customer profiles deleted.
        """
        email = self.data.test_email
        customer_list_id = self.data.customer_list_id

        customers = self.data_api.customer_search(token, customer_list_id, email)
        contact_ids = [c.get(CRM_CONTACT_REFERENCE) for c in customers]
        account_ids = [c.get(CRM_ACCOUNT_REFERENCE) for c in customers]

        records = conn.query(
            f"SELECT Id, AccountId FROM Contact WHERE Email = '{_soql_literal(email)}'"
        )
        for record in records:
            contact = SFDCContact.model_validate(record)
            contact_ids.append(contact.id)
            account_ids.append(contact.account_id)

        self._purge_crm_records(conn, contact_ids, account_ids)

        deleted = 0
        for customer in customers:
            if self.data_api.customer_delete(token, customer_list_id, customer["customer_no"]):
                deleted += 1

        logger.info(f"Purged {deleted} B2C customers and {len(records)} SFDC contacts for {email}")
        return deleted

    def _purge_crm_records(
        self,
        conn: SObjectClient,
        contact_ids: Iterable[Optional[str]],
        account_ids: Iterable[Optional[str]],
    ) -> None:
        # Contacts before Accounts
        for contact_id in dict.fromkeys(filter(None, contact_ids)):
            conn.delete("Contact", contact_id)
        for account_id in dict.fromkeys(filter(None, account_ids)):
            conn.delete("Account", account_id)
