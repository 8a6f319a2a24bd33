"""Run a suite from Python instead of the ``endy`` CLI.

    python examples/simple.py
"""

from __future__ import annotations

import sys
from pathlib import Path

from endy import EndyError, RunConfig, run_suite


def main() -> int:
    config = RunConfig(path=Path(__file__).with_name("config.yaml"), timeout=10.0)
    try:
        result = run_suite(config)
    except EndyError as exc:
        print(exc)
        return 1
    if not result.completed:
        print(result.error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
