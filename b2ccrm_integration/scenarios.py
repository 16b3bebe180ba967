"""Authenticating a B2C Customer Profile via the OCAPI Shop API.

Multi-cloud scenarios exercising b2c-crm-sync: registration and
authentication of a storefront customer, with and without the sync feature,
and the sync-on-login update of a profile patched behind the storefront's back.

Each scenario runs sequentially against live B2C Commerce and Salesforce
instances. Cleanup always runs after a scenario, whatever its outcome.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .assertions import (
    validate_contact_and_account_ids,
    validate_customer_attributes_aligned,
    validate_registered_user_contact_reconciled,
    validate_registered_user_contact_updates,
    validate_registered_user_no_sfdc_attributes,
    validate_registered_response,
    validate_registered_user_patch_results,
    validate_registered_user_with_sfdc_attributes,
)
from .config import RuntimeEnvironment, ScenarioData
from .data_api import DataAPIClient
from .errors import ScenarioTimeoutError, UseCaseSetupError
from .models import CRM_CONTACT_REFERENCE, OCAPIResponse, SFDCAuthCredentials
from .processes import UseCaseProcesses
from .shop_api import ShopAPIClient
from .sobject_api import SObjectClient

logger = logging.getLogger(__name__)

SCENARIOS = ("sync_disabled", "sync_enabled", "sync_on_login_update")

SCENARIO_TITLES = {
    "sync_disabled": "does not create a SFDC Account / Contact when B2C-CRM-Sync is disabled",
    "sync_enabled": "successfully creates a SFDC Account / Contact when B2C-CRM-Sync is enabled",
    "sync_on_login_update": (
        "successfully triggers a profile property update to the mapped SFDC Contact "
        "when sync-on-login is enabled"
    ),
}


@dataclass
class ScenarioResult:
    """Outcome of a single scenario run."""

    name: str
    passed: bool
    duration: float
    error: Optional[Exception] = None

    @property
    def title(self) -> str:
        return SCENARIO_TITLES[self.name]


class AuthenticationScenarios:
    """Scenario driver for B2C Customer Profile authentication with b2c-crm-sync."""

    def __init__(
        self,
        environment: RuntimeEnvironment,
        data: ScenarioData,
        processes: UseCaseProcesses,
        shop: Optional[ShopAPIClient] = None,
        data_api: Optional[DataAPIClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.environment = environment
        self.data = data
        self.processes = processes
        self.shop = shop or ShopAPIClient(environment)
        self.data_api = data_api or processes.data_api
        self._clock = clock

        self.site_id: Optional[str] = None
        self.b2c_admin_auth_token: Optional[str] = None
        self.sfdc_auth_credentials: Optional[SFDCAuthCredentials] = None
        self.registered_b2c_customer_no: Optional[str] = None
        self._scenario: Optional[str] = None
        self._deadline: Optional[float] = None

    # ── Suite hooks ─────────────────────────────────────────────────────

    def setup(self) -> None:
        """Retrieve auth tokens for both clouds and purge legacy test data.

        Raises:
            UseCaseSetupError: If any part of the initialisation fails.
        """
        try:
            self.site_id = self.data.site_id
            init_results = self.processes.init_use_case_tests(self.site_id)
        except Exception as e:
            logger.error(f"Use-case setup failed: {e}")
            raise UseCaseSetupError(str(e)) from e

        self.b2c_admin_auth_token = init_results.multi_cloud_init_results.b2c_admin_auth_token
        self.sfdc_auth_credentials = init_results.multi_cloud_init_results.sfdc_auth_credentials

    def after_each(self) -> None:
        """Purge the registered customer and switch b2c-crm-sync off again."""
        self.processes.sleep(self.data.purge_sleep_timeout)
        self.processes.b2c_customer_purge_by_customer_no(
            self.b2c_admin_auth_token, self.conn, self.registered_b2c_customer_no
        )
        self.registered_b2c_customer_no = None
        self.processes.b2c_crm_sync_disable(self.b2c_admin_auth_token, self.site_id)

    def after_all(self) -> None:
        """Purge all customer data created from the test profile."""
        self.processes.b2c_customer_purge(self.b2c_admin_auth_token, self.conn)

    @property
    def conn(self) -> SObjectClient:
        return self.sfdc_auth_credentials.conn

    # ── Steps ───────────────────────────────────────────────────────────

    @contextmanager
    def deadline(self, name: str) -> Iterator[None]:
        """Bound the scenario ``name`` by the configured scenario timeout.

        Scenario steps run inside this block raise ScenarioTimeoutError once
        the deadline has passed.
        """
        self._scenario = name
        self._deadline = self._clock() + self.data.scenario_timeout
        try:
            yield
        finally:
            self._scenario = None
            self._deadline = None

    def _checkpoint(self) -> None:
        if self._deadline is not None and self._clock() > self._deadline:
            raise ScenarioTimeoutError(self._scenario, self.data.scenario_timeout)

    def _sleep(self, seconds: float) -> None:
        self.processes.sleep(seconds)
        self._checkpoint()

    def _register(self) -> OCAPIResponse:
        client_id = self.environment.b2c_client_id
        guest_auth = self.shop.auth_as_guest(self.site_id, client_id)
        self._checkpoint()

        results = self.shop.customer_post(
            self.site_id, client_id, guest_auth.auth_token, self.data.profile_template
        )
        # after_each purges by this number, even when validation fails
        self.registered_b2c_customer_no = results.customer_no
        self._checkpoint()
        return results

    def _authenticate(self) -> OCAPIResponse:
        customer = self.data.profile_template["customer"]
        results = self.shop.auth_as_registered(
            self.site_id,
            self.environment.b2c_client_id,
            customer["login"],
            self.data.profile_template["password"],
        )
        self._checkpoint()
        return results

    def _retrieve_contact(self, b2c_results: OCAPIResponse) -> Dict:
        contact = self.conn.retrieve("Contact", b2c_results.data.get(CRM_CONTACT_REFERENCE))
        self._checkpoint()
        return contact

    # ── Scenarios ───────────────────────────────────────────────────────

    def sync_disabled(self) -> None:
        """Register and authenticate; no CRM back-references may appear."""
        registration = self._register()
        validate_registered_user_no_sfdc_attributes(registration)

        authentication = self._authenticate()
        validate_registered_user_no_sfdc_attributes(authentication)

    def sync_enabled(self) -> None:
        """Register, enable sync, authenticate; the profile maps to a Contact."""
        registration = self._register()
        validate_registered_user_no_sfdc_attributes(registration)

        self.processes.b2c_crm_sync_enable(self.b2c_admin_auth_token, self.site_id)
        self._sleep(self.data.sleep_timeout)

        authentication = self._authenticate()
        validate_registered_user_with_sfdc_attributes(authentication)

        # Let the PlatformEvent fire
        self._sleep(self.data.sleep_timeout)

        contact = self._retrieve_contact(authentication)
        validate_contact_and_account_ids(contact, authentication)
        validate_customer_attributes_aligned(contact, authentication)

    def sync_on_login_update(self) -> None:
        """Patch a synced profile via the Data API, then log in again."""
        self.processes.b2c_crm_sync_enable(self.b2c_admin_auth_token, self.site_id)

        registration = self._register()
        validate_registered_user_with_sfdc_attributes(registration)

        # Data API patches do not trigger an update to SFDC
        patch_results = self.data_api.customer_patch(
            self.b2c_admin_auth_token,
            self.data.customer_list_id,
            registration.customer_no,
            self.data.update_template,
        )
        validate_registered_user_patch_results(patch_results)
        self._checkpoint()

        contact = self._retrieve_contact(patch_results)
        validate_registered_user_contact_updates(contact, patch_results)

        authentication = self._authenticate()
        validate_registered_response(authentication)

        updated_contact = self._retrieve_contact(authentication)
        validate_registered_user_contact_updates(updated_contact, authentication)

        if self.data.verify_login_reconciliation:
            self._sleep(self.data.sleep_timeout)
            reconciled_contact = self._retrieve_contact(authentication)
            validate_registered_user_contact_reconciled(reconciled_contact, authentication)

    # ── Runner ──────────────────────────────────────────────────────────

    def run_scenario(self, name: str) -> ScenarioResult:
        """Run one scenario followed by its cleanup."""
        if name not in SCENARIOS:
            raise ValueError(f"Unknown scenario: {name}")

        logger.info(f"\n=== {SCENARIO_TITLES[name]} ===")
        started = self._clock()

        error: Optional[Exception] = None
        try:
            with self.deadline(name):
                getattr(self, name)()
        except Exception as e:
            logger.error(f"✗ {name} failed: {e}")
            error = e

        try:
            self.after_each()
        except Exception as e:
            logger.error(f"✗ Cleanup after {name} failed: {e}")
            error = error or e

        result = ScenarioResult(
            name=name,
            passed=error is None,
            duration=self._clock() - started,
            error=error,
        )
        if result.passed:
            logger.info(f"✓ {name} passed in {result.duration:.1f}s")
        return result

    def run(self, names: Optional[Iterable[str]] = None) -> List[ScenarioResult]:
        """Run the suite: setup, each scenario with cleanup, final purge."""
        selected = list(names or SCENARIOS)
        unknown = [name for name in selected if name not in SCENARIOS]
        if unknown:
            raise ValueError(f"Unknown scenarios: {', '.join(unknown)}")

        self.setup()
        try:
            return [self.run_scenario(name) for name in selected]
        finally:
            self.after_all()
