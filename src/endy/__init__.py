"""Endy: declarative end-to-end HTTP tests from a YAML file."""

from __future__ import annotations

from endy._internal.config import RunConfig, load_config, parse_duration
from endy._internal.errors import (
    AssertionFailedError,
    BenchmarkError,
    BenchmarkFailedError,
    ConfigError,
    DeadlineExceededError,
    EndyError,
    MissingSecretError,
    RequestBuildError,
    TransportError,
)
from endy.engine.models import CaseResult, CaseStatus, RunMode, RunOutcome, RunResult
from endy.engine.runner import SuiteRunner, run_suite
from endy.suite import HeaderSpec, Suite, TestCase, load_suite

__version__ = "0.1.0"

__all__ = [
    "AssertionFailedError",
    "BenchmarkError",
    "BenchmarkFailedError",
    "CaseResult",
    "CaseStatus",
    "ConfigError",
    "DeadlineExceededError",
    "EndyError",
    "HeaderSpec",
    "MissingSecretError",
    "RequestBuildError",
    "RunConfig",
    "RunMode",
    "RunOutcome",
    "RunResult",
    "Suite",
    "SuiteRunner",
    "TestCase",
    "TransportError",
    "load_config",
    "load_suite",
    "parse_duration",
    "run_suite",
]
