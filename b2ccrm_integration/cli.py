"""Command-line runner for the live b2c-crm-sync authentication scenarios.

Usage:
    b2ccrm-live
    b2ccrm-live --scenario sync_enabled --env-file .env
    b2ccrm-live --test-data my_test_data.json --log-level DEBUG
"""

import logging
import sys
from typing import List

import click

from .config import ScenarioData, get_runtime_environment
from .errors import UseCaseSetupError
from .processes import UseCaseProcesses
from .scenarios import SCENARIOS, AuthenticationScenarios, ScenarioResult
from .shop_api import ShopAPIClient

logger = logging.getLogger(__name__)


def print_summary(results: List[ScenarioResult]) -> bool:
    """Log the scenario summary and report whether everything passed."""
    logger.info("\n" + "=" * 60)
    logger.info(" SCENARIO SUMMARY")
    logger.info("=" * 60)

    passed = sum(1 for result in results if result.passed)

    for result in results:
        status = "✓ PASSED" if result.passed else "✗ FAILED"
        logger.info(f"  {result.title}: {status}")
        if result.error is not None:
            logger.info(f"      {type(result.error).__name__}: {result.error}")

    logger.info(f"\n  Total: {passed}/{len(results)} scenarios passed")
    return passed == len(results)


@click.command()
@click.option("--env-file", default=None, help="Path to a .env file with instance credentials.")
@click.option("--test-data", default=None, help="Path to a test data JSON file.")
@click.option(
    "--scenario",
    "scenarios",
    multiple=True,
    type=click.Choice(SCENARIOS),
    help="Scenario to run (repeatable; default: all).",
)
@click.option("--log-level", default="INFO", show_default=True)
def main(env_file, test_data, scenarios, log_level):
    """Run the b2c-crm-sync authentication scenarios against live instances."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        environment = get_runtime_environment(env_file)
        data = ScenarioData.load(test_data)
    except ValueError as e:
        raise click.ClickException(str(e))

    logger.info(f"Starting b2c-crm-sync authentication scenarios against {environment.b2c_hostname}\n")

    processes = UseCaseProcesses(environment, data)
    with ShopAPIClient(environment) as shop, processes.data_api:
        driver = AuthenticationScenarios(environment, data, processes, shop=shop)
        try:
            results = driver.run(scenarios or None)
        except UseCaseSetupError as e:
            logger.error(f"✗ Suite setup failed: {e}")
            sys.exit(1)
        finally:
            if driver.sfdc_auth_credentials is not None:
                driver.conn.close()

    sys.exit(0 if print_summary(results) else 1)


if __name__ == "__main__":
    main()
