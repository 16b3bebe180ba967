"""Validation helpers shared by the authentication scenarios.

Each helper centralizes the checks for one step of a scenario and raises
AssertionError with a descriptive message when the two clouds disagree. The
checks raise explicitly so they still fail under ``python -O``, where the
``b2ccrm-live`` command may run outside pytest.
"""

from typing import Any, Dict

from .models import CRM_ACCOUNT_REFERENCE, CRM_CONTACT_REFERENCE, OCAPIResponse


def check(condition: Any, message: str) -> None:
    """Raise AssertionError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise AssertionError(message)


def validate_registered_response(b2c_results: OCAPIResponse) -> None:
    """Confirm a 200 status code and a data node in an OCAPI response."""
    check(b2c_results.status == 200, " -- expected a 200 status code from B2C Commerce")
    check(b2c_results.data, " -- expected to find a data node in the B2C Commerce response")


def validate_registered_user_no_sfdc_attributes(b2c_results: OCAPIResponse) -> None:
    """Confirm that SFDC attributes were not created on a B2C Customer Profile."""
    validate_registered_response(b2c_results)
    check(b2c_results.data.get("auth_type") == "registered",
          " -- expected to see a registered B2C Commerce customer profile")
    check(CRM_ACCOUNT_REFERENCE not in b2c_results.data,
          f" -- expected to not see the {CRM_ACCOUNT_REFERENCE} property in the B2C Commerce response")
    check(CRM_CONTACT_REFERENCE not in b2c_results.data,
          f" -- expected to not see the {CRM_CONTACT_REFERENCE} property in the B2C Commerce response")


def validate_registered_user_with_sfdc_attributes(b2c_results: OCAPIResponse) -> None:
    """Confirm that SFDC attributes were created on a B2C Customer Profile."""
    validate_registered_response(b2c_results)
    check(b2c_results.data.get("auth_type") == "registered",
          " -- expected to see a registered B2C Commerce customer profile")
    check(CRM_ACCOUNT_REFERENCE in b2c_results.data,
          f" -- expected to see the {CRM_ACCOUNT_REFERENCE} property in the B2C Commerce response")
    check(CRM_CONTACT_REFERENCE in b2c_results.data,
          f" -- expected to see the {CRM_CONTACT_REFERENCE} property in the B2C Commerce response")


def _validate_contact_record(sfdc_contact: Dict[str, Any]) -> None:
    check(sfdc_contact.get("success") is True, " -- expected the success flag to have a value of true")
    check("Id" in sfdc_contact, " -- expected to find an Id property on the SFDC Contact record")


def validate_contact_and_account_ids(sfdc_contact: Dict[str, Any], b2c_results: OCAPIResponse) -> None:
    """Compare a Contact with a registered user's Contact and Account identifiers."""
    _validate_contact_record(sfdc_contact)
    check(sfdc_contact["Id"] == b2c_results.data.get(CRM_CONTACT_REFERENCE),
          " -- SFDC and B2C ContactID attributes do not match")
    check(sfdc_contact.get("AccountId") == b2c_results.data.get(CRM_ACCOUNT_REFERENCE),
          " -- SFDC and B2C AccountID attributes do not match")


def validate_customer_attributes_aligned(sfdc_contact: Dict[str, Any], b2c_results: OCAPIResponse) -> None:
    """Check that the customerId and email are aligned across both records."""
    check(sfdc_contact.get("B2C_Customer_ID__c") == b2c_results.data.get("customer_id"),
          " -- SFDC and B2C CustomerID attributes do not match")
    check(sfdc_contact.get("Email") == b2c_results.data.get("email"),
          " -- SFDC and B2C Email Addresses attributes do not match")


def validate_registered_user_patch_results(b2c_results: OCAPIResponse) -> None:
    """Validate that a B2C Commerce Customer was successfully patched."""
    validate_registered_response(b2c_results)
    check("job_title" in b2c_results.data,
          " -- expected to see the job_title property in the B2C Commerce response")
    check("phone_home" in b2c_results.data,
          " -- expected to see the phone_home property in the B2C Commerce response")


def validate_registered_user_contact_updates(sfdc_contact: Dict[str, Any], b2c_results: OCAPIResponse) -> None:
    """Confirm the Contact does not yet carry the patched profile values.

    Data API patches bypass the storefront hooks, so until the next
    sync-on-login event is processed the two records are expected to differ.
    """
    _validate_contact_record(sfdc_contact)
    check(sfdc_contact.get("B2C_Job_Title__c") != b2c_results.data.get("job_title"),
          " -- SFDC and B2C job-title attributes already match")
    check(sfdc_contact.get("HomePhone") != b2c_results.data.get("phone_home"),
          " -- SFDC and B2C home phone attributes already match")


def validate_registered_user_contact_reconciled(sfdc_contact: Dict[str, Any], b2c_results: OCAPIResponse) -> None:
    """Confirm the Contact carries the patched profile values after sync-on-login."""
    _validate_contact_record(sfdc_contact)
    check(sfdc_contact.get("B2C_Job_Title__c") == b2c_results.data.get("job_title"),
          " -- SFDC and B2C job-title attributes do not match")
    check(sfdc_contact.get("HomePhone") == b2c_results.data.get("phone_home"),
          " -- SFDC and B2C home phone attributes do not match")
