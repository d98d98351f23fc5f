from __future__ import annotations

import time
from typing import Callable

# Notion allows an average of three requests per second per integration.
DEFAULT_DELAY_SECONDS = 0.35


class NoPacer:
    def pace(self) -> None:
        return None


class FixedDelayPacer:
    """Sleeps a fixed delay; the executor calls pace() between dispatches."""

    def __init__(self, delay: float = DEFAULT_DELAY_SECONDS, sleep_fn: Callable[[float], None] = time.sleep) -> None:
        self.delay = max(0.0, float(delay))
        self.sleep = sleep_fn

    def pace(self) -> None:
        if self.delay > 0:
            self.sleep(self.delay)


def make_pacer(delay: float, sleep_fn: Callable[[float], None] = time.sleep):
    return FixedDelayPacer(delay, sleep_fn) if delay and delay > 0 else NoPacer()
