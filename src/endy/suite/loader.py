"""YAML suite loading and secret header resolution."""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from endy._internal.config import parse_duration
from endy._internal.errors import ConfigError, MissingSecretError
from endy._internal.logging import get_logger
from endy.suite.models import HeaderSpec, Suite, TestCase

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = get_logger("suite.loader")

_CASE_KEYS = frozenset(
    {
        "url",
        "assert_code",
        "method",
        "timeout",
        "headers",
        "body",
        "threads",
        "duration",
        "requests",
    }
)
_HEADER_KEYS = frozenset({"name", "value", "env_secret"})


def load_suite(
    file_path: str | Path,
    environ: Mapping[str, str] | None = None,
) -> Suite:
    """Load a test suite from a YAML file.

    The document must be a list of test case records. Header secrets are
    resolved against *environ* once, after parsing, so every returned
    header carries its final value.

    Args:
        file_path: Path to the YAML suite file. Relative paths are
            resolved against the current working directory.
        environ: Environment to resolve ``env_secret`` references
            against. Defaults to ``os.environ``.

    Returns:
        The loaded Suite, in declaration order.

    Raises:
        ConfigError: If the file cannot be read or does not match the
            suite schema.
        MissingSecretError: If a referenced environment variable is unset
            or empty.
    """
    path = Path(file_path)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"read test configuration file {path}: {exc}"
        raise ConfigError(msg) from exc

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = f"unmarshal test configuration {path}: {exc}"
        raise ConfigError(msg) from exc

    suite = Suite.of(parse_suite(document), source=path)
    suite = resolve_secrets(suite, os.environ if environ is None else environ)

    logger.debug("Loaded %d test cases from %s", len(suite), path)
    return suite


def parse_suite(document: Any) -> list[TestCase]:
    """Validate a parsed YAML document and build test cases from it.

    Args:
        document: The object returned by ``yaml.safe_load``.

    Returns:
        Test cases in declaration order. Secrets are not yet resolved.

    Raises:
        ConfigError: If the document does not match the suite schema.
    """
    if document is None:
        return []
    if not isinstance(document, list):
        msg = f"test configuration must be a list of test cases, got {type(document).__name__}"
        raise ConfigError(msg)
    return [_parse_case(index, record) for index, record in enumerate(document)]


def resolve_secrets(suite: Suite, environ: Mapping[str, str]) -> Suite:
    """Replace secret header values with their environment variable content.

    Args:
        suite: Suite whose headers may reference environment variables.
        environ: Environment mapping to read from.

    Returns:
        A new Suite in which every secret header carries its resolved value.

    Raises:
        MissingSecretError: On the first referenced variable that is unset
            or empty.
    """
    resolved: list[TestCase] = []
    for case in suite:
        headers: list[HeaderSpec] = []
        for header in case.headers:
            if header.is_secret:
                value = environ.get(header.secret_env_var or "")
                if not value:
                    raise MissingSecretError(header.secret_env_var or "", case.index, header.name)
                header = header.with_value(value)
            headers.append(header)
        resolved.append(replace(case, headers=tuple(headers)))
    return Suite(cases=tuple(resolved), source=suite.source)


def _parse_case(index: int, record: Any) -> TestCase:
    where = f"test case #{index}"
    if not isinstance(record, dict):
        msg = f"{where}: expected a mapping, got {type(record).__name__}"
        raise ConfigError(msg)

    unknown = sorted(str(k) for k in record if k not in _CASE_KEYS)
    if unknown:
        logger.warning("%s: ignoring unknown keys: %s", where, ", ".join(unknown))

    url = _required_str(record, "url", where)
    method = _required_str(record, "method", where)

    assert_code = record.get("assert_code")
    if isinstance(assert_code, bool) or not isinstance(assert_code, int):
        msg = f"{where}: 'assert_code' must be an integer, got {assert_code!r}"
        raise ConfigError(msg)
    if not 100 <= assert_code <= 599:
        msg = f"{where}: 'assert_code' must be between 100 and 599, got {assert_code}"
        raise ConfigError(msg)

    timeout: float | None = None
    if record.get("timeout") is not None:
        try:
            timeout = parse_duration(record["timeout"])
        except ConfigError as exc:
            msg = f"{where}: 'timeout': {exc}"
            raise ConfigError(msg) from None

    return TestCase(
        url=url,
        method=method,
        expected_status=assert_code,
        index=index,
        timeout=timeout,
        headers=_parse_headers(record.get("headers"), where),
        body=_scalar_str(record, "body", where),
        threads=_scalar_str(record, "threads", where),
        requests=_scalar_str(record, "requests", where),
        duration=_scalar_str(record, "duration", where),
    )


def _parse_headers(raw: Any, where: str) -> tuple[HeaderSpec, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        msg = f"{where}: 'headers' must be a list, got {type(raw).__name__}"
        raise ConfigError(msg)

    headers: list[HeaderSpec] = []
    for position, item in enumerate(raw):
        header_where = f"{where}, header #{position}"
        if not isinstance(item, dict):
            msg = f"{header_where}: expected a mapping, got {type(item).__name__}"
            raise ConfigError(msg)
        unknown = sorted(str(k) for k in item if k not in _HEADER_KEYS)
        if unknown:
            logger.warning("%s: ignoring unknown keys: %s", header_where, ", ".join(unknown))
        secret = _scalar_str(item, "env_secret", header_where)
        headers.append(
            HeaderSpec(
                name=_required_str(item, "name", header_where),
                value=_scalar_str(item, "value", header_where),
                secret_env_var=secret or None,
            )
        )
    return tuple(headers)


def _required_str(record: dict[Any, Any], key: str, where: str) -> str:
    value = record.get(key)
    if not isinstance(value, str) or not value.strip():
        msg = f"{where}: '{key}' is required and must be a non-empty string"
        raise ConfigError(msg)
    return value.strip()


def _scalar_str(record: dict[Any, Any], key: str, where: str) -> str:
    """Return an optional scalar field as a string, ``""`` when absent."""
    value = record.get(key)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str | int | float):
        return str(value)
    msg = f"{where}: '{key}' must be a scalar value, got {type(value).__name__}"
    raise ConfigError(msg)
