"""B2C Commerce OCAPI Data API client.

Administrative calls used to set up and tear down the use-case tests. Patches
issued here bypass the storefront hooks, so they never trigger a sync to
Salesforce on their own.
"""

import base64
import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from .config import RuntimeEnvironment
from .models import CustomerProfilePatch, OCAPIResponse
from .request import bearer_headers, create_request_instance, raise_for_status

logger = logging.getLogger(__name__)


class DataAPIClient:
    """Synchronous client for the OCAPI Data API."""

    def __init__(
        self,
        environment: RuntimeEnvironment,
        client: Optional[httpx.Client] = None,
    ):
        self.environment = environment
        self._client = client or create_request_instance(environment)

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _get_basic_auth_header(self) -> str:
        """Generate Basic auth header for the Account Manager token request."""
        credentials = f"{self.environment.b2c_client_id}:{self.environment.b2c_client_secret}"
        encoded = base64.b64encode(credentials.encode()).decode()
        return f"Basic {encoded}"

    def get_admin_token(self) -> str:
        """Obtain an administrative authToken via the client_credentials grant."""
        logger.info("Requesting B2C Commerce administrative authToken...")

        response = self._client.post(
            self.environment.b2c_am_url,
            headers={
                "Authorization": self._get_basic_auth_header(),
                "Content-Type": "application/x-www-form-urlencoded",
            },
            data={"grant_type": "client_credentials"},
        )
        raise_for_status(response, "obtain the B2C administrative authToken")

        logger.info("Successfully obtained B2C administrative authToken")
        return response.json()["access_token"]

    def customer_get(self, token: str, customer_list_id: str, customer_no: str) -> OCAPIResponse:
        """Retrieve a customer profile from a customer list."""
        response = self._client.get(
            self.environment.customer_url(customer_list_id, customer_no),
            headers=bearer_headers(token),
        )
        raise_for_status(response, f"retrieve customer {customer_no}")
        return OCAPIResponse(status=response.status_code, data=response.json())

    def customer_patch(
        self,
        token: str,
        customer_list_id: str,
        customer_no: str,
        patch: Union[CustomerProfilePatch, Dict[str, Any]],
    ) -> OCAPIResponse:
        """Patch customer profile attributes without firing storefront hooks."""
        if not isinstance(patch, CustomerProfilePatch):
            patch = CustomerProfilePatch.model_validate(patch)

        response = self._client.patch(
            self.environment.customer_url(customer_list_id, customer_no),
            headers=bearer_headers(token),
            json=patch.model_dump(exclude_none=True),
        )
        raise_for_status(response, f"patch customer {customer_no}")

        logger.info(f"Patched B2C customer {customer_no} in {customer_list_id}")
        return OCAPIResponse(status=response.status_code, data=response.json())

    def customer_search(
        self,
        token: str,
        customer_list_id: str,
        email: str,
        page_size: int = 200,
    ) -> List[Dict[str, Any]]:
        """Find customer profiles in a customer list by email address.

        Follows the search paging until every hit up to ``total`` is collected.
        """
        customers: List[Dict[str, Any]] = []
        start = 0
        while True:
            query = {
                "query": {
                    "term_query": {
                        "fields": ["email"],
                        "operator": "is",
                        "values": [email],
                    }
                },
                "select": "(**)",
                "start": start,
                "count": page_size,
            }
            response = self._client.post(
                self.environment.customer_search_url(customer_list_id),
                headers=bearer_headers(token),
                json=query,
            )
            raise_for_status(response, f"search customers in {customer_list_id}")

            result = response.json()
            hits = result.get("hits", [])
            customers.extend(hit.get("data", hit) for hit in hits)
            start += len(hits)
            if not hits or start >= result.get("total", 0):
                break

        logger.debug(f"Found {len(customers)} customers matching {email}")
        return customers

    def customer_delete(self, token: str, customer_list_id: str, customer_no: str) -> bool:
        """Delete a customer profile.

        Returns:
            True if the profile was deleted, False if it no longer existed.
        """
        response = self._client.delete(
            self.environment.customer_url(customer_list_id, customer_no),
            headers=bearer_headers(token),
        )
        if response.status_code == 404:
            logger.debug(f"Customer {customer_no} already purged")
            return False
        raise_for_status(response, f"delete customer {customer_no}")

        logger.info(f"Deleted B2C customer {customer_no}")
        return True

    def site_preferences_patch(
        self,
        token: str,
        site_id: str,
        group_id: str,
        instance_type: str,
        preferences: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Update custom site preferences within a preference group."""
        response = self._client.patch(
            self.environment.site_preferences_url(site_id, group_id, instance_type),
            headers=bearer_headers(token),
            json=preferences,
        )
        raise_for_status(response, f"update {group_id} preferences for {site_id}")

        logger.info(f"Updated {group_id} preferences for {site_id}: {preferences}")
        return response.json()
