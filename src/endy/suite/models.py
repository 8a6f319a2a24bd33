"""Test case, header and suite definitions."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from endy._internal.types import HeaderPairs


@dataclass(frozen=True)
class HeaderSpec:
    """A single request header.

    Attributes:
        name: Header name, sent verbatim.
        value: Header value. Overwritten at load time when
            ``secret_env_var`` is set.
        secret_env_var: Name of the environment variable holding the
            real value, or None for a literal header.
    """

    name: str
    value: str = ""
    secret_env_var: str | None = None

    @property
    def is_secret(self) -> bool:
        """Return True if the value is sourced from the environment."""
        return bool(self.secret_env_var)

    def with_value(self, value: str) -> HeaderSpec:
        """Return a copy of this header carrying *value*."""
        return replace(self, value=value)


@dataclass(frozen=True)
class TestCase:
    """One declarative end-to-end test.

    Attributes:
        url: Absolute request URL.
        method: HTTP method, sent as written.
        expected_status: Status code that marks the test as passed.
        index: Position of the case in its suite.
        timeout: Per-case timeout in seconds. Informational only: the
            run-wide deadline is the one enforced.
        headers: Request headers in declaration order.
        body: Literal request payload. Empty means no body.
        threads: Benchmark concurrency, forwarded to the load generator.
        requests: Benchmark total request count.
        duration: Benchmark duration (e.g. ``10s``).
    """

    __test__ = False  # not a pytest test class

    url: str
    method: str
    expected_status: int
    index: int = 0
    timeout: float | None = None
    headers: tuple[HeaderSpec, ...] = ()
    body: str = ""
    threads: str = ""
    requests: str = ""
    duration: str = ""

    @property
    def name(self) -> str:
        """Return a short ``METHOD url`` label for reporting."""
        return f"{self.method} {self.url}"

    def header_pairs(self) -> HeaderPairs:
        """Return headers as ordered ``(name, value)`` pairs."""
        return [(h.name, h.value) for h in self.headers]


@dataclass(frozen=True)
class Suite:
    """Ordered, immutable collection of test cases.

    Iteration order is declaration order, which is also execution order.

    Attributes:
        cases: The test cases.
        source: File the suite was loaded from, if any.
    """

    cases: tuple[TestCase, ...] = ()
    source: Path | None = field(default=None, compare=False)

    @classmethod
    def of(cls, cases: Iterable[TestCase], source: Path | None = None) -> Suite:
        """Build a suite, renumbering case indexes by position."""
        numbered = tuple(replace(c, index=i) for i, c in enumerate(cases))
        return cls(cases=numbered, source=source)

    def __iter__(self) -> Iterator[TestCase]:
        return iter(self.cases)

    def __len__(self) -> int:
        return len(self.cases)

    def __getitem__(self, index: int) -> TestCase:
        return self.cases[index]
