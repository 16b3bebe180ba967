"""Base request shared by the OCAPI clients."""

import logging
from typing import Dict

import httpx

from .config import RuntimeEnvironment

logger = logging.getLogger(__name__)


def create_request_instance(environment: RuntimeEnvironment) -> httpx.Client:
    """Create the base HTTP client pointed at the B2C Commerce instance."""
    return httpx.Client(
        base_url=environment.b2c_base_url,
        headers={"Content-Type": "application/json"},
        timeout=environment.http_timeout,
    )


def bearer_headers(token: str) -> Dict[str, str]:
    """Get standard headers for authorised OCAPI requests."""
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


def raise_for_status(response: httpx.Response, action: str) -> None:
    """Log and raise if the response carries an error status."""
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"Failed to {action}: {e}")
        logger.error(f"Response body: {response.text}")
        raise
