"""Salesforce REST sObject client.

Authenticates with the OAuth2 username-password flow and exposes the record
calls the use-case tests rely on to inspect and purge synchronised Contacts
and Accounts.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import RuntimeEnvironment
from .models import SFDCAuthCredentials
from .request import raise_for_status

logger = logging.getLogger(__name__)


class SObjectClient:
    """Synchronous client for the Salesforce sObject REST API."""

    def __init__(
        self,
        access_token: str,
        instance_url: str,
        api_version: str = "52.0",
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        self.access_token = access_token
        self.instance_url = instance_url.rstrip("/")
        self.api_version = api_version
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def login(
        cls,
        environment: RuntimeEnvironment,
        client: Optional[httpx.Client] = None,
    ) -> SFDCAuthCredentials:
        """Authenticate against Salesforce and return a bound connection.

        Returns:
            SFDCAuthCredentials whose ``conn`` is a ready SObjectClient.
        """
        http = client or httpx.Client(timeout=environment.http_timeout)
        logger.info(f"Authenticating {environment.sfdc_username} against Salesforce...")

        response = http.post(
            environment.sfdc_token_url,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={
                "grant_type": "password",
                "client_id": environment.sfdc_client_id,
                "client_secret": environment.sfdc_client_secret,
                "username": environment.sfdc_username,
                "password": environment.sfdc_password + environment.sfdc_security_token,
            },
        )
        raise_for_status(response, "authenticate against Salesforce")

        token_data = response.json()
        conn = cls(
            access_token=token_data["access_token"],
            instance_url=token_data["instance_url"],
            api_version=environment.sfdc_api_version,
            client=http,
        )
        logger.info(f"Successfully authenticated against {conn.instance_url}")
        return SFDCAuthCredentials(
            access_token=conn.access_token,
            instance_url=conn.instance_url,
            conn=conn,
        )

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.instance_url}/services/data/v{self.api_version}{path}"

    def retrieve(self, object_name: str, record_id: str) -> Dict[str, Any]:
        """Retrieve a record by id.

        Returns:
            The record fields with a ``success`` flag set to True.
        """
        response = self._client.get(
            self._url(f"/sobjects/{object_name}/{record_id}"),
            headers=self._headers,
        )
        raise_for_status(response, f"retrieve {object_name} {record_id}")

        record = response.json()
        record["success"] = True
        logger.debug(f"Retrieved {object_name} {record_id}")
        return record

    def query(self, soql: str) -> List[Dict[str, Any]]:
        """Run a SOQL query and return every matching record."""
        response = self._client.get(
            self._url("/query"),
            headers=self._headers,
            params={"q": soql},
        )
        raise_for_status(response, "run SOQL query")

        payload = response.json()
        records = list(payload.get("records", []))
        while not payload.get("done", True) and payload.get("nextRecordsUrl"):
            response = self._client.get(
                f"{self.instance_url}{payload['nextRecordsUrl']}",
                headers=self._headers,
            )
            raise_for_status(response, "fetch next SOQL batch")
            payload = response.json()
            records.extend(payload.get("records", []))

        logger.debug(f"Query returned {len(records)} records")
        return records

    def update(self, object_name: str, record_id: str, fields: Dict[str, Any]) -> None:
        """Update fields on an existing record."""
        response = self._client.patch(
            self._url(f"/sobjects/{object_name}/{record_id}"),
            headers=self._headers,
            json=fields,
        )
        raise_for_status(response, f"update {object_name} {record_id}")
        logger.info(f"Updated {object_name} {record_id}")

    def delete(self, object_name: str, record_id: str) -> bool:
        """Delete a record.

        Returns:
            True if the record was deleted, False if it no longer existed.
        """
        response = self._client.delete(
            self._url(f"/sobjects/{object_name}/{record_id}"),
            headers=self._headers,
        )
        if response.status_code == 404:
            logger.debug(f"{object_name} {record_id} already deleted")
            return False
        raise_for_status(response, f"delete {object_name} {record_id}")

        logger.info(f"Deleted {object_name} {record_id}")
        return True
