"""B2C Commerce OCAPI Shop API client.

Synchronous client covering the storefront customer calls exercised by the
use-case tests: guest authentication, customer registration, and registered
(credentials) authentication.
"""

import base64
import logging
from typing import Any, Dict, Optional, Union

import httpx

from .config import RuntimeEnvironment
from .models import CustomerRegistration, GuestAuthResult, OCAPIResponse
from .request import bearer_headers, create_request_instance, raise_for_status

logger = logging.getLogger(__name__)


def _token_from_header(response: httpx.Response) -> Optional[str]:
    header = response.headers.get("Authorization")
    if not header:
        return None
    return header[len("Bearer "):] if header.startswith("Bearer ") else header


class ShopAPIClient:
    """Synchronous client for the OCAPI Shop API."""

    def __init__(
        self,
        environment: RuntimeEnvironment,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize the Shop API client.

        Args:
            environment: Runtime environment to target.
            client: Pre-built base request. Created from the environment if
                    not provided.
        """
        self.environment = environment
        self._client = client or create_request_instance(environment)

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def auth_as_guest(self, site_id: str, client_id: str) -> GuestAuthResult:
        """Authenticate an anonymous shopper and return the guest token."""
        url = self.environment.shop_url(site_id, "/customers/auth")
        logger.info(f"Requesting guest authToken for site {site_id}")

        response = self._client.post(
            url,
            params={"client_id": client_id},
            json={"type": "guest"},
        )
        raise_for_status(response, "authenticate as guest")

        token = _token_from_header(response)
        if not token:
            raise httpx.HTTPStatusError(
                "Guest authentication returned no Authorization header",
                request=response.request,
                response=response,
            )
        return GuestAuthResult(status=response.status_code, auth_token=token, data=response.json())

    def customer_post(
        self,
        site_id: str,
        client_id: str,
        auth_token: str,
        profile: Union[CustomerRegistration, Dict[str, Any]],
    ) -> OCAPIResponse:
        """Register a customer profile using a guest authToken."""
        if not isinstance(profile, CustomerRegistration):
            profile = CustomerRegistration.model_validate(profile)

        url = self.environment.shop_url(site_id, "/customers")
        response = self._client.post(
            url,
            params={"client_id": client_id},
            headers=bearer_headers(auth_token),
            json=profile.model_dump(exclude_none=True),
        )
        raise_for_status(response, f"register customer {profile.customer.login}")

        data = response.json()
        logger.info(f"Registered B2C customer: {data.get('customer_no')}")
        return OCAPIResponse(status=response.status_code, data=data)

    def auth_as_registered(
        self,
        site_id: str,
        client_id: str,
        login: str,
        password: str,
    ) -> OCAPIResponse:
        """Authenticate a registered customer with login credentials."""
        credentials = base64.b64encode(f"{login}:{password}".encode()).decode()
        url = self.environment.shop_url(site_id, "/customers/auth")

        response = self._client.post(
            url,
            params={"client_id": client_id},
            headers={
                "Authorization": f"Basic {credentials}",
                "Content-Type": "application/json",
            },
            json={"type": "credentials"},
        )
        raise_for_status(response, f"authenticate {login}")

        data = response.json()
        logger.info(f"Authenticated registered customer: {data.get('customer_no')}")
        return OCAPIResponse(
            status=response.status_code,
            data=data,
            auth_token=_token_from_header(response),
        )
