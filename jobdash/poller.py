from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Optional, Protocol

from jobdash.telemetry.audit import SessionAudit


class Scrollable(Protocol):
    def scroll_by(self, lines: int) -> int: ...


class RepeatingTimer:
    """
    Runs `action` every `interval_s` seconds on the running event loop until
    cancelled. A handle is cancelled at most once; later cancels are no-ops.
    """

    def __init__(self, interval_s: float, action: Callable[[], None], *, on_error: Callable[[Exception], None] | None = None) -> None:
        self.interval_s = float(interval_s)
        self._action = action
        self._on_error = on_error
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._cancelled and not self._task.done()

    def start(self) -> "RepeatingTimer":
        if self._task is not None:
            raise RuntimeError("timer already started")
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    def cancel(self) -> bool:
        if self._task is None or self._cancelled:
            return False
        self._cancelled = True
        self._task.cancel()
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            try:
                self._action()
            except Exception as e:  # noqa: BLE001
                # One bad tick must not end the follow loop.
                if self._on_error:
                    self._on_error(e)


class FollowState(str, Enum):
    idle = "idle"
    running = "running"


class LiveFollowPoller:
    """
    Keeps a running job's output scrolled toward its end ("tail -f").
    Idle -> Running on start, Running -> Idle on stop. At most one repeating
    timer exists at any time.
    """

    def __init__(self, *, interval_s: float = 0.1, scroll_step: int = 10, audit: SessionAudit | None = None) -> None:
        self.interval_s = float(interval_s)
        self.scroll_step = int(scroll_step)
        self._audit = audit
        self._timer: Optional[RepeatingTimer] = None
        self.target_id: Optional[str] = None
        self.ticks = 0

    @property
    def state(self) -> FollowState:
        return FollowState.running if self._timer is not None and self._timer.active else FollowState.idle

    @property
    def timer(self) -> Optional[RepeatingTimer]:
        return self._timer

    def start(self, target_id: str, surface: Scrollable) -> None:
        self.stop()
        self.target_id = target_id
        self.ticks = 0

        def _tick() -> None:
            self.ticks += 1
            surface.scroll_by(self.scroll_step)

        self._timer = RepeatingTimer(self.interval_s, _tick, on_error=self._tick_failed).start()
        if self._audit:
            self._audit.write("follow.started", {"job_id": target_id, "interval_s": self.interval_s})

    def stop(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None or not timer.cancel():
            return
        if self._audit:
            self._audit.write("follow.stopped", {"job_id": self.target_id, "ticks": self.ticks})

    def _tick_failed(self, e: Exception) -> None:
        if self._audit:
            self._audit.write("follow.error", {"job_id": self.target_id, "error": f"{type(e).__name__}: {e}"})
