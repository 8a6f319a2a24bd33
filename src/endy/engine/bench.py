"""Benchmark-mode executor: delegate each case to an external load generator.

The load generator is `bombardier <https://github.com/codesenberg/bombardier>`_
or any tool with the same flag surface. Its output is captured and logged
verbatim; success means a zero exit status, nothing more.
"""

from __future__ import annotations

import asyncio
import contextlib
import shlex
import time
from typing import TYPE_CHECKING

from endy._internal.config import DEFAULT_BENCH_BINARY
from endy._internal.errors import BenchmarkError
from endy._internal.logging import get_logger
from endy.engine.models import CaseResult, CaseStatus

if TYPE_CHECKING:
    from endy.engine.deadline import Deadline
    from endy.suite.models import TestCase

logger = get_logger("engine.bench")

# Raw-output reporter ("-p r") prints the plain text result block.
_OUTPUT_FORMAT = "r"


def build_bench_command(case: TestCase, binary: str = DEFAULT_BENCH_BINARY) -> list[str]:
    """Translate a test case into a load generator argument list.

    Token order is fixed: concurrency, request count or duration, method,
    body, keep-alive, headers, output format, target URL. Flags whose value
    is unset are omitted. When both a request count and a duration are set
    the request count wins.

    Args:
        case: The test case.
        binary: Executable name or path, used as ``argv[0]``.

    Returns:
        The full argument vector, starting with *binary*.
    """
    argv = [binary]

    if case.threads:
        argv += ["-c", case.threads]

    if case.requests:
        argv += ["-n", case.requests]
    elif case.duration:
        argv += ["-d", case.duration]

    argv += ["-m", case.method]

    if case.body:
        argv += ["-b", case.body]

    argv.append("-k")

    for name, value in case.header_pairs():
        argv += ["-H", f"{name}: {value}"]

    argv += ["-p", _OUTPUT_FORMAT, case.url]
    return argv


async def execute_bench_test(
    case: TestCase,
    deadline: Deadline,
    binary: str = DEFAULT_BENCH_BINARY,
) -> CaseResult:
    """Run the load generator for *case* and wait for it to exit.

    Args:
        case: The test case to benchmark.
        deadline: Run-wide deadline bounding the subprocess.
        binary: Load generator executable.

    Returns:
        A PASSED result on exit status 0, BENCHMARK_FAILED otherwise.

    Raises:
        BenchmarkError: If the process cannot be started.
        DeadlineExceededError: If the run deadline elapses. The process is
            killed before this is raised.
    """
    if case.requests and case.duration:
        logger.warning(
            "both requests and duration set, duration is ignored",
            extra={"fields": {"url": case.url, "requests": case.requests, "duration": case.duration}},
        )

    argv = build_bench_command(case, binary)
    logger.info(
        "benchmarking",
        extra={"fields": {"url": case.url, "command": shlex.join(argv)}},
    )

    start = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as exc:
        logger.error(
            "bench command failed",
            extra={"fields": {"url": case.url, "error": str(exc)}},
        )
        msg = f"start {binary}: {exc}"
        raise BenchmarkError(msg, case=case) from exc

    try:
        async with deadline.scope(case):
            stdout, _ = await proc.communicate()
    except BaseException:
        await _kill(proc)
        raise

    latency_ms = (time.monotonic() - start) * 1000
    output = stdout.decode("utf-8", errors="replace") if stdout else ""
    return_code = proc.returncode if proc.returncode is not None else -1

    if return_code != 0:
        logger.error(
            "bench command failed",
            extra={"fields": {"url": case.url, "return_code": return_code, "output": output}},
        )
        status = CaseStatus.BENCHMARK_FAILED
    else:
        logger.info("benchmark output", extra={"fields": {"url": case.url, "output": output}})
        status = CaseStatus.PASSED

    return CaseResult(
        case=case,
        status=status,
        sent_body=case.body,
        output=output,
        return_code=return_code,
        latency_ms=latency_ms,
    )


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill a still-running process and reap it."""
    if proc.returncode is not None:
        return
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await proc.wait()
