"""Exceptions raised by the b2c-crm-sync integration harness."""


class B2CCRMError(Exception):
    """Base class for harness errors."""


class UseCaseSetupError(B2CCRMError):
    """Raised when suite setup (tokens, feature toggles, purge) fails."""


class ScenarioTimeoutError(B2CCRMError):
    """Raised when a scenario runs past its deadline."""

    def __init__(self, scenario: str, timeout: float):
        super().__init__(f"Scenario '{scenario}' exceeded its {timeout:.0f}s timeout")
        self.scenario = scenario
        self.timeout = timeout
