"""Run-wide deadline shared by every operation in a run."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from endy._internal.errors import DeadlineExceededError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from endy.suite.models import TestCase


class Deadline:
    """A single absolute deadline on the running event loop.

    Created once when a run starts. Every network call or subprocess wait
    is wrapped in :meth:`scope`, so all cases count down the same budget.

    Attributes:
        timeout: Total budget in seconds.
        when: Absolute expiry time in ``loop.time()`` units.
    """

    def __init__(self, timeout: float) -> None:
        """Start the countdown. Must be called inside a running loop.

        Args:
            timeout: Total budget in seconds.
        """
        self.timeout = timeout
        self._loop = asyncio.get_running_loop()
        self.when = self._loop.time() + timeout

    def remaining(self) -> float:
        """Return the seconds left before expiry, never negative."""
        return max(0.0, self.when - self._loop.time())

    @property
    def expired(self) -> bool:
        """Return True once the deadline has passed."""
        return self._loop.time() >= self.when

    @contextlib.asynccontextmanager
    async def scope(self, case: TestCase | None = None) -> AsyncIterator[None]:
        """Bound the enclosed block by the deadline.

        Args:
            case: Test case being executed, attached to the raised error.

        Raises:
            DeadlineExceededError: If the deadline elapses inside the block.
        """
        try:
            async with asyncio.timeout_at(self.when):
                yield
        except TimeoutError:
            msg = f"deadline of {self.timeout:g}s exceeded"
            raise DeadlineExceededError(msg, case=case) from None
