"""Declarative test suite model and YAML loader.

A suite is an ordered list of :class:`TestCase` records loaded from a YAML
file by :func:`load_suite`. Header secrets are resolved from the
environment at load time, before any request is issued.
"""

from __future__ import annotations

from endy.suite.loader import load_suite, parse_suite, resolve_secrets
from endy.suite.models import HeaderSpec, Suite, TestCase

__all__ = [
    "HeaderSpec",
    "Suite",
    "TestCase",
    "load_suite",
    "parse_suite",
    "resolve_secrets",
]
