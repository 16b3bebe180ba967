"""Shared fixtures: an in-memory B2C Commerce + Salesforce pair behind httpx.MockTransport."""

import base64
import itertools
import json
import re
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from b2ccrm_integration.config import RuntimeEnvironment, ScenarioData
from b2ccrm_integration.data_api import DataAPIClient
from b2ccrm_integration.processes import UseCaseProcesses
from b2ccrm_integration.scenarios import AuthenticationScenarios
from b2ccrm_integration.shop_api import ShopAPIClient

ADMIN_TOKEN = "admin-token"
GUEST_TOKEN = "guest-token"
SFDC_TOKEN = "sfdc-token"
INSTANCE_URL = "https://fake.my.salesforce.com"

SHOP_PATH = re.compile(r"^/s/(?P<site>[^/]+)/dw/shop/v21_3/customers(?P<auth>/auth)?$")
CUSTOMER_PATH = re.compile(r"^/s/-/dw/data/v21_3/customer_lists/(?P<list>[^/]+)/customers/(?P<no>[^/]+)$")
SEARCH_PATH = re.compile(r"^/s/-/dw/data/v21_3/customer_lists/(?P<list>[^/]+)/customer_search$")
PREFERENCES_PATH = re.compile(
    r"^/s/-/dw/data/v21_3/sites/(?P<site>[^/]+)/site_preferences/preference_groups/b2ccrmsync/development$"
)
SOBJECT_PATH = re.compile(r"^/services/data/v52\.0/sobjects/(?P<object>Contact|Account)/(?P<id>[^/]+)$")
QUERY_PATH = "/services/data/v52.0/query"


def _json(status: int, payload: Any, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    return httpx.Response(status, json=payload, headers=headers)


class FakeMultiCloud:
    """Just enough of B2C Commerce, b2c-crm-sync and Salesforce to drive the scenarios.

    Registration or login with sync enabled resolves the Contact synchronously.
    Sync-on-login updates of an already mapped Contact are queued as platform
    events and only delivered when ``deliver_platform_events`` runs, which the
    tests install as the use-case sleeper.
    """

    def __init__(self):
        self.sync_enabled = False
        self.sync_creates_contacts = True
        self.preferences: Dict[str, Any] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.contacts: Dict[str, Dict[str, Any]] = {}
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.pending_events: List[Callable[[], None]] = []
        self.sleeps: List[float] = []
        self.requests: List[Tuple[str, str]] = []
        self._failures: Dict[Tuple[str, str], int] = {}
        self._customer_seq = itertools.count(1)
        self._record_seq = itertools.count(1)

    # ── Test controls ───────────────────────────────────────────────────

    def fail(self, method: str, path: str, status: int = 500) -> None:
        """Make every request matching method and path prefix fail."""
        self._failures[(method, path)] = status

    def deliver_platform_events(self, seconds: float = 0) -> None:
        self.sleeps.append(seconds)
        events, self.pending_events = self.pending_events, []
        for event in events:
            event()

    def seed_customer(self, email: str, linked: bool = False) -> Dict[str, Any]:
        profile = self._new_customer({"login": email, "email": email}, "secret")
        if linked:
            self._create_contact(profile)
        return profile

    def seed_contact(self, email: str) -> Dict[str, Any]:
        account_id = f"001{next(self._record_seq):015d}"
        contact_id = f"003{next(self._record_seq):015d}"
        self.accounts[account_id] = {"Id": account_id}
        self.contacts[contact_id] = {"Id": contact_id, "AccountId": account_id, "Email": email}
        return self.contacts[contact_id]

    # ── Transport ───────────────────────────────────────────────────────

    def handle(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.requests.append((method, path))

        for (fail_method, fail_path), status in self._failures.items():
            if method == fail_method and path.startswith(fail_path):
                return _json(status, {"fault": {"type": "InjectedFailure"}})

        if request.url.host == "account.demandware.com":
            return _json(200, {"access_token": ADMIN_TOKEN, "expires_in": 1799})
        if path == "/services/oauth2/token":
            return _json(200, {"access_token": SFDC_TOKEN, "instance_url": INSTANCE_URL})
        if request.url.host == "fake.my.salesforce.com":
            return self._handle_sfdc(request, method, path)

        body = json.loads(request.content) if request.content else None

        match = SHOP_PATH.match(path)
        if match:
            if match.group("auth"):
                return self._shop_auth(request, body)
            return self._shop_register(request, body)

        if request.headers.get("Authorization") != f"Bearer {ADMIN_TOKEN}":
            return _json(401, {"fault": {"type": "InvalidAccessTokenException"}})

        match = CUSTOMER_PATH.match(path)
        if match:
            return self._data_customer(method, match.group("no"), body)
        if SEARCH_PATH.match(path):
            email = body["query"]["term_query"]["values"][0]
            matches = [{"data": self._public(c)} for c in self.customers.values() if c["email"] == email]
            start = body.get("start", 0)
            hits = matches[start:start + body.get("count", 25)]
            return _json(200, {"count": len(hits), "hits": hits, "start": start, "total": len(matches)})
        if PREFERENCES_PATH.match(path):
            self.preferences.update(body)
            self.sync_enabled = bool(self.preferences.get("c_b2ccrm_syncIsEnabled"))
            return _json(200, self.preferences)

        return _json(404, {"fault": {"type": "ResourcePathNotFoundException"}})

    # ── B2C Commerce ────────────────────────────────────────────────────

    @staticmethod
    def _public(profile: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in profile.items() if k != "password"}

    def _new_customer(self, customer: Dict[str, Any], password: str) -> Dict[str, Any]:
        customer_no = f"{next(self._customer_seq):08d}"
        profile = dict(
            customer,
            customer_no=customer_no,
            customer_id=uuid.uuid4().hex,
            auth_type="registered",
            password=password,
        )
        self.customers[customer_no] = profile
        return profile

    def _find_login(self, login: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self.customers.values() if c["login"] == login), None)

    def _shop_register(self, request: httpx.Request, body: Dict[str, Any]) -> httpx.Response:
        if request.headers.get("Authorization") != f"Bearer {GUEST_TOKEN}":
            return _json(401, {"fault": {"type": "InvalidAccessTokenException"}})
        if self._find_login(body["customer"]["login"]):
            return _json(400, {"fault": {"type": "LoginAlreadyInUseException"}})

        profile = self._new_customer(body["customer"], body["password"])
        if self.sync_enabled:
            self._resolve_contact(profile)
        return _json(200, self._public(profile))

    def _shop_auth(self, request: httpx.Request, body: Dict[str, Any]) -> httpx.Response:
        if body["type"] == "guest":
            return _json(
                200,
                {"auth_type": "guest", "customer_id": uuid.uuid4().hex},
                headers={"Authorization": f"Bearer {GUEST_TOKEN}"},
            )

        encoded = request.headers["Authorization"][len("Basic "):]
        login, password = base64.b64decode(encoded).decode().split(":", 1)
        profile = self._find_login(login)
        if profile is None or profile["password"] != password:
            return _json(401, {"fault": {"type": "AuthenticationFailedException"}})

        if self.sync_enabled:
            self._resolve_contact(profile)
        return _json(
            200,
            self._public(profile),
            headers={"Authorization": f"Bearer registered-{profile['customer_no']}"},
        )

    def _data_customer(self, method: str, customer_no: str, body: Optional[Dict[str, Any]]) -> httpx.Response:
        profile = self.customers.get(customer_no)
        if profile is None:
            return _json(404, {"fault": {"type": "CustomerNotFoundException"}})
        if method == "DELETE":
            del self.customers[customer_no]
            return httpx.Response(204)
        if method == "PATCH":
            profile.update(body)
        return _json(200, self._public(profile))

    # ── b2c-crm-sync ────────────────────────────────────────────────────

    def _resolve_contact(self, profile: Dict[str, Any]) -> None:
        if "c_b2ccrm_contactId" not in profile:
            if self.sync_creates_contacts:
                self._create_contact(profile)
            return

        def sync_on_login():
            contact = self.contacts.get(profile["c_b2ccrm_contactId"])
            if contact is not None:
                contact["B2C_Job_Title__c"] = profile.get("job_title")
                contact["HomePhone"] = profile.get("phone_home")

        self.pending_events.append(sync_on_login)

    def _create_contact(self, profile: Dict[str, Any]) -> None:
        contact = self.seed_contact(profile["email"])
        contact.update(
            {
                "B2C_Customer_ID__c": profile["customer_id"],
                "B2C_Customer_No__c": profile["customer_no"],
                "B2C_Job_Title__c": profile.get("job_title"),
                "HomePhone": profile.get("phone_home"),
            }
        )
        profile["c_b2ccrm_contactId"] = contact["Id"]
        profile["c_b2ccrm_accountId"] = contact["AccountId"]

    # ── Salesforce ──────────────────────────────────────────────────────

    def _handle_sfdc(self, request: httpx.Request, method: str, path: str) -> httpx.Response:
        if request.headers.get("Authorization") != f"Bearer {SFDC_TOKEN}":
            return _json(401, [{"errorCode": "INVALID_SESSION_ID"}])

        if path == QUERY_PATH:
            email = re.search(r"Email = '([^']*)'", request.url.params["q"]).group(1)
            records = [
                {"attributes": {"type": "Contact"}, "Id": c["Id"], "AccountId": c["AccountId"]}
                for c in self.contacts.values()
                if c.get("Email") == email
            ]
            return _json(200, {"totalSize": len(records), "done": True, "records": records})

        match = SOBJECT_PATH.match(path)
        if not match:
            return _json(404, [{"errorCode": "NOT_FOUND"}])

        store = self.contacts if match.group("object") == "Contact" else self.accounts
        record = store.get(match.group("id"))
        if record is None:
            return _json(404, [{"errorCode": "NOT_FOUND"}])
        if method == "DELETE":
            del store[match.group("id")]
            if store is self.accounts:
                for contact_id in [k for k, c in self.contacts.items() if c["AccountId"] == record["Id"]]:
                    del self.contacts[contact_id]
            return httpx.Response(204)
        if method == "PATCH":
            record.update(json.loads(request.content))
            return httpx.Response(204)
        return _json(200, dict(record, attributes={"type": match.group("object")}))


@pytest.fixture
def fake():
    return FakeMultiCloud()


@pytest.fixture
def transport(fake):
    return httpx.MockTransport(fake.handle)


@pytest.fixture
def environment():
    return RuntimeEnvironment(
        b2c_hostname="zzzz-001.dx.commercecloud.salesforce.com",
        b2c_client_id="b2c-client",
        b2c_client_secret="b2c-secret",
        sfdc_username="admin@b2ccrm.example.com",
        sfdc_password="password",
        sfdc_client_id="sfdc-client",
        sfdc_client_secret="sfdc-secret",
        sfdc_security_token="token",
    )


@pytest.fixture
def scenario_data(monkeypatch):
    monkeypatch.delenv("B2CCRM_SLEEP_TIMEOUT", raising=False)
    monkeypatch.delenv("B2CCRM_CUSTOMER_LIST", raising=False)
    return ScenarioData.load()


@pytest.fixture
def b2c_client(environment, transport):
    with httpx.Client(base_url=environment.b2c_base_url, transport=transport) as client:
        yield client


@pytest.fixture
def sfdc_client(transport):
    with httpx.Client(transport=transport) as client:
        yield client


@pytest.fixture
def shop(environment, b2c_client):
    return ShopAPIClient(environment, client=b2c_client)


@pytest.fixture
def data_api(environment, b2c_client):
    return DataAPIClient(environment, client=b2c_client)


@pytest.fixture
def processes(environment, scenario_data, data_api, sfdc_client, fake):
    return UseCaseProcesses(
        environment,
        scenario_data,
        data_api=data_api,
        sfdc_client=sfdc_client,
        sleeper=fake.deliver_platform_events,
    )


@pytest.fixture
def driver(environment, scenario_data, processes, shop):
    return AuthenticationScenarios(environment, scenario_data, processes, shop=shop)
