"""Configuration loading for Endy."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from pathlib import Path

from endy._internal.errors import ConfigError

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_TIMEOUT = 10.0
DEFAULT_BENCH_BINARY = "bombardier"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str | float) -> float:
    """Parse a duration into seconds.

    Accepts plain numbers (seconds) and Go-style duration strings such as
    ``"10s"``, ``"500ms"`` or ``"1m30s"``.

    Args:
        value: Duration as a number of seconds or a duration string.

    Returns:
        The duration in seconds.

    Raises:
        ConfigError: If the value is not a finite, non-negative duration.
    """
    if isinstance(value, bool) or not isinstance(value, str | int | float):
        msg = f"Invalid duration: {value!r}"
        raise ConfigError(msg)

    if isinstance(value, int | float):
        seconds = float(value)
    else:
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            seconds = _parse_unit_duration(text)

    if not math.isfinite(seconds):
        msg = f"Invalid duration: {value!r} (must be finite)"
        raise ConfigError(msg)
    if seconds < 0:
        msg = f"Duration must not be negative, got: {value!r}"
        raise ConfigError(msg)
    return seconds


def _parse_unit_duration(text: str) -> float:
    sign = 1.0
    rest = text
    if rest and rest[0] in "+-":
        sign = -1.0 if rest[0] == "-" else 1.0
        rest = rest[1:]

    if not rest:
        msg = f"Invalid duration: {text!r}"
        raise ConfigError(msg)

    total = 0.0
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART_RE.match(rest, pos)
        if match is None:
            msg = f"Invalid duration: {text!r} (expected e.g. 10s, 500ms, 1m30s)"
            raise ConfigError(msg)
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return sign * total


@dataclass(frozen=True)
class RunConfig:
    """Process-wide run configuration, fixed before the run starts.

    Attributes:
        path: Path to the YAML suite file.
        timeout: Deadline in seconds for the whole suite. Zero selects the
            default of 10 seconds.
        bench_mode: Run every case through the load generator instead of
            asserting its status code.
        bench_binary: Name or path of the load-generation executable.
    """

    path: Path = Path(DEFAULT_CONFIG_PATH)
    timeout: float = DEFAULT_TIMEOUT
    bench_mode: bool = False
    bench_binary: str = DEFAULT_BENCH_BINARY

    @property
    def effective_timeout(self) -> float:
        """Return the timeout actually applied to the run."""
        return self.timeout if self.timeout > 0 else DEFAULT_TIMEOUT


def load_config() -> RunConfig:
    """Load run configuration from environment variables with defaults.

    Environment variables:
        ENDY_CONFIG_PATH: Suite file path (default: config.yaml).
        ENDY_TIMEOUT: Whole-suite deadline, e.g. ``30s`` (default: 10s).
        ENDY_BENCH_BINARY: Load generator executable (default: bombardier).

    Returns:
        Populated RunConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    timeout_str = os.environ.get("ENDY_TIMEOUT", "10s")
    try:
        timeout = parse_duration(timeout_str)
    except ConfigError:
        msg = f"ENDY_TIMEOUT must be a duration, got: {timeout_str!r}"
        raise ConfigError(msg) from None

    bench_binary = os.environ.get("ENDY_BENCH_BINARY", DEFAULT_BENCH_BINARY).strip()
    if not bench_binary:
        msg = "ENDY_BENCH_BINARY must not be empty"
        raise ConfigError(msg)

    return RunConfig(
        path=Path(os.environ.get("ENDY_CONFIG_PATH", DEFAULT_CONFIG_PATH)),
        timeout=timeout,
        bench_binary=bench_binary,
    )
