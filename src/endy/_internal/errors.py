"""Custom exception hierarchy for Endy."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from endy.engine.models import CaseResult
    from endy.suite.models import TestCase


class EndyError(Exception):
    """Base exception for all Endy errors.

    All custom exceptions in Endy inherit from this class, making it easy
    to catch any Endy-specific error with a single except clause.
    """


class ConfigError(EndyError):
    """Raised when configuration is invalid or missing.

    Examples:
        - The suite file does not exist or is not valid YAML.
        - A test case record is missing ``url`` or ``method``.
        - An ``ENDY_*`` environment variable has an invalid value.
    """


class MissingSecretError(ConfigError):
    """Raised when a header references an unset environment variable.

    Attributes:
        env_var: Name of the missing environment variable.
        case_index: Position of the test case in the suite.
        header: Name of the header that references the variable.
    """

    def __init__(self, env_var: str, case_index: int, header: str) -> None:
        self.env_var = env_var
        self.case_index = case_index
        self.header = header
        super().__init__(
            f"Environment variable {env_var} not found "
            f"(test case #{case_index}, header {header!r})"
        )


class ExecutionError(EndyError):
    """Base class for failures raised while executing a single test case.

    Attributes:
        case: The test case that was executing, if known.
    """

    def __init__(self, message: str, case: TestCase | None = None) -> None:
        self.case = case
        super().__init__(message)


class RequestBuildError(ExecutionError):
    """Raised when a test case cannot be turned into an HTTP request."""


class TransportError(ExecutionError):
    """Raised when sending a request or reading its response fails."""


class DeadlineExceededError(ExecutionError):
    """Raised when the run-wide deadline elapses mid-operation."""


class BenchmarkError(ExecutionError):
    """Raised when the load-generation tool cannot be started."""


class AssertionFailedError(ExecutionError):
    """A response status code did not match the expected one.

    Attributes:
        result: The failed case result, with the received status and body.
    """

    def __init__(self, result: CaseResult) -> None:
        self.result = result
        super().__init__(
            f"Test failed: {result.case.method} {result.case.url} "
            f"expected status {result.case.expected_status}, got {result.status_code}",
            case=result.case,
        )


class BenchmarkFailedError(ExecutionError):
    """The load-generation tool exited with a non-zero status.

    Attributes:
        result: The failed case result, with the captured output.
    """

    def __init__(self, result: CaseResult) -> None:
        self.result = result
        super().__init__(
            f"Benchmark failed: {result.case.method} {result.case.url} "
            f"exited with code {result.return_code}",
            case=result.case,
        )
