"""First-signal-wins polling over page state."""

from __future__ import annotations

import time
from typing import Callable, Mapping, Protocol


class _Sleeper(Protocol):
    def wait_for_timeout(self, timeout: float) -> None: ...


def race_signals(
    page: _Sleeper,
    signals: Mapping[str, Callable[[], bool]],
    *,
    timeout_ms: int,
    poll_ms: int = 250,
    clock: Callable[[], float] = time.monotonic,
) -> str | None:
    """Poll each probe in order until one reports True.

    Returns the name of the first probe that fired, or None when the shared
    timeout elapses. Probes only observe page state, so the losers are simply
    not polled again. A probe that raises counts as not fired for that round.
    """

    deadline = clock() + timeout_ms / 1000.0
    while True:
        for name, probe in signals.items():
            try:
                if probe():
                    return name
            except Exception:  # noqa: BLE001
                continue
        if clock() >= deadline:
            return None
        page.wait_for_timeout(poll_ms)
