"""b2c-crm-sync Integration Test Package.

This package drives multi-cloud use-case tests between a B2C Commerce
storefront (OCAPI Shop and Data APIs) and a Salesforce CRM org (sObject REST
API), validating that customer profiles and Contacts stay synchronised.
"""

from .config import RuntimeEnvironment, ScenarioData, get_runtime_environment
from .data_api import DataAPIClient
from .processes import UseCaseProcesses
from .scenarios import AuthenticationScenarios, ScenarioResult
from .shop_api import ShopAPIClient
from .sobject_api import SObjectClient

__all__ = [
    "AuthenticationScenarios",
    "DataAPIClient",
    "RuntimeEnvironment",
    "ScenarioData",
    "ScenarioResult",
    "SObjectClient",
    "ShopAPIClient",
    "UseCaseProcesses",
    "get_runtime_environment",
]
