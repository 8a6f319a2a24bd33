"""Top-level suite orchestrator."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import aiohttp

from endy._internal.errors import (
    AssertionFailedError,
    BenchmarkFailedError,
    EndyError,
)
from endy._internal.logging import get_logger
from endy.engine.api import execute_api_test
from endy.engine.bench import execute_bench_test
from endy.engine.deadline import Deadline
from endy.engine.models import CaseResult, CaseStatus, RunMode, RunOutcome, RunResult
from endy.suite.loader import load_suite

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from endy._internal.config import RunConfig
    from endy.suite.models import Suite, TestCase

logger = get_logger("engine.runner")


class SuiteRunner:
    """Runs a suite sequentially under a single run-wide deadline.

    The mode is fixed at construction. Cases execute one at a time in
    declaration order, and the first failed case or raised error stops the
    run. The runner never exits the process: it returns a RunResult and
    leaves that decision to the caller.

    Attributes:
        suite: The suite to run.
        config: Run configuration.
        mode: ASSERTION or BENCHMARK, from ``config.bench_mode``.
    """

    def __init__(
        self,
        suite: Suite,
        config: RunConfig,
        *,
        on_result: Callable[[CaseResult], None] | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            suite: The suite to run.
            config: Run configuration (timeout, mode, bench binary).
            on_result: Optional callback invoked with each CaseResult as
                soon as its case finishes.
        """
        self.suite = suite
        self.config = config
        self.mode = RunMode.BENCHMARK if config.bench_mode else RunMode.ASSERTION
        self._on_result = on_result

    def run(self) -> RunResult:
        """Execute the suite and return its result.

        This is a blocking call that owns its own event loop.

        Returns:
            RunResult with outcome COMPLETED or ABORTED.
        """
        return asyncio.run(self.run_async())

    async def run_async(self) -> RunResult:
        """Execute the suite on the running event loop.

        Returns:
            RunResult with outcome COMPLETED or ABORTED.
        """
        timeout = self.config.effective_timeout
        logger.info(
            "Starting run: mode=%s, cases=%d, timeout=%gs",
            self.mode.name.lower(),
            len(self.suite),
            timeout,
        )

        start_time = time.monotonic()
        deadline = Deadline(timeout)
        results: list[CaseResult] = []
        error: EndyError | None = None

        if self.mode is RunMode.BENCHMARK:
            binary = self.config.bench_binary
            error = await self._run_cases(
                results, lambda case: execute_bench_test(case, deadline, binary=binary)
            )
        else:
            # One session, and so one connection pool, for the whole run
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None)) as session:
                error = await self._run_cases(
                    results, lambda case: execute_api_test(case, session, deadline)
                )

        duration = time.monotonic() - start_time
        outcome = RunOutcome.COMPLETED if error is None else RunOutcome.ABORTED

        if error is None:
            logger.info("Run completed: cases=%d, duration=%.2fs", len(results), duration)
        else:
            logger.error(
                "Run aborted: %s",
                error,
                extra={"fields": {"executed": len(results), "duration_s": round(duration, 3)}},
            )

        return RunResult(
            mode=self.mode,
            outcome=outcome,
            results=results,
            error=error,
            duration_seconds=duration,
            total_cases=len(self.suite),
        )

    async def _run_cases(
        self,
        results: list[CaseResult],
        execute: Callable[[TestCase], Awaitable[CaseResult]],
    ) -> EndyError | None:
        """Run every case in order, stopping at the first failure.

        Returns:
            The error that stopped the run, or None if every case passed.
        """
        for case in self.suite:
            try:
                result = await execute(case)
            except EndyError as exc:
                logger.error("execute test", extra={"fields": {"url": case.url, "error": str(exc)}})
                return exc

            results.append(result)
            if self._on_result is not None:
                self._on_result(result)

            if result.status is CaseStatus.ASSERTION_FAILED:
                return AssertionFailedError(result)
            if result.status is CaseStatus.BENCHMARK_FAILED:
                return BenchmarkFailedError(result)
        return None


def run_suite(
    config: RunConfig,
    *,
    on_result: Callable[[CaseResult], None] | None = None,
) -> RunResult:
    """Load the suite named by ``config.path`` and run it.

    Args:
        config: Run configuration.
        on_result: Optional per-case result callback.

    Returns:
        The RunResult.

    Raises:
        ConfigError: If the suite file cannot be loaded.
        MissingSecretError: If a header secret is not set. No request is
            sent in that case.
    """
    suite = load_suite(config.path)
    return SuiteRunner(suite, config, on_result=on_result).run()
