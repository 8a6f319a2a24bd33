"""Shared type aliases for Endy."""

from __future__ import annotations

# Ordered HTTP header pairs; duplicate names are allowed.
HeaderPairs = list[tuple[str, str]]

# Structured log fields attached via ``extra={"fields": ...}``.
LogFields = dict[str, object]
