from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import time

from sheetmerge.errors import InvalidTransition

IDLE = "idle"
RUNNING = "running"
DONE = "done"
ERROR = "error"

VALID_STATUSES = {IDLE, RUNNING, DONE, ERROR}

TRANSITIONS = {
    IDLE: {RUNNING},
    RUNNING: {DONE, ERROR},
    DONE: set(),
    ERROR: set(),
}


def _timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime())


@dataclass
class RunState:
    """
    Status and progress of one execution run.

    idle -> running -> done | error. A finished run is never restarted;
    a new run gets a new RunState.
    """

    status: str = IDLE
    total: int = 0
    completed: int = 0
    progress: int = 0
    error: Optional[str] = None

    started: Optional[str] = None
    finished: Optional[str] = None

    # ------------------------------------------------------------------
    @property
    def is_finished(self) -> bool:
        return self.status in (DONE, ERROR)

    def _move(self, target: str) -> None:
        if target not in TRANSITIONS[self.status]:
            raise InvalidTransition(f"Cannot move run from '{self.status}' to '{target}'")
        self.status = target

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, total: int) -> None:
        self._move(RUNNING)
        self.total = max(0, int(total))
        self.completed = 0
        self.progress = 0
        self.started = _timestamp()

    def advance(self) -> int:
        """Count one dispatched plan; returns the progress percentage."""
        if self.status != RUNNING:
            raise InvalidTransition(f"Cannot advance a run that is '{self.status}'")
        self.completed += 1
        pct = int(self.completed * 100 / self.total + 0.5) if self.total else 100
        self.progress = max(self.progress, min(pct, 100))
        return self.progress

    def finish(self) -> None:
        self._move(DONE)
        if not self.total:
            self.progress = 100
        self.finished = _timestamp()

    def fail(self, error: str) -> None:
        self._move(ERROR)
        self.error = error
        self.finished = _timestamp()
