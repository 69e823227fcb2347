from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from jobdash.telemetry.audit import SessionAudit


class Display:
    """
    The single mount point. Exactly one screen owns it at a time; mounting a
    screen overwrites the previous one (after running its unmount callback).

    Renders are ticketed: `claim()` is taken when a screen starts loading and
    a mount carrying an older ticket is dropped, so a slow fetch can't clobber
    a screen the user has since navigated to.
    """

    def __init__(self, *, audit: SessionAudit | None = None) -> None:
        self.screen: Optional[str] = None
        self.html: str = ""
        self.alerts: List[str] = []
        self.mounts = 0
        self._audit = audit
        self._ticket = 0
        self._on_unmount: Optional[Callable[[], None]] = None

    @property
    def ticket(self) -> int:
        return self._ticket

    def claim(self) -> int:
        """Start a navigation: tear down the current screen's live resources and drop its alerts."""
        self._ticket += 1
        self.alerts = []
        self._teardown()
        return self._ticket

    def mount(
        self,
        screen: str,
        html: str,
        *,
        ticket: Optional[int] = None,
        on_unmount: Optional[Callable[[], None]] = None,
    ) -> bool:
        if ticket is not None and not self.is_current(ticket):
            self.discard(screen, ticket)
            if on_unmount:
                on_unmount()
            return False
        self._teardown()
        self.screen = screen
        self.html = html
        self.mounts += 1
        self._on_unmount = on_unmount
        return True

    def is_current(self, ticket: int) -> bool:
        return ticket == self._ticket

    def discard(self, screen: str, ticket: int) -> None:
        if self._audit:
            self._audit.write("render.discarded", {"screen": screen, "ticket": ticket, "latest": self._ticket})

    def update(self, screen: str, html: str) -> bool:
        """Re-render the mounted screen in place; ignored once another screen owns the display."""
        if self.screen != screen:
            return False
        self.html = html
        return True

    def alert(self, message: str) -> None:
        self.alerts.append(message)

    def unmount(self) -> None:
        self._teardown()
        self.screen = None
        self.html = ""

    def _teardown(self) -> None:
        cb, self._on_unmount = self._on_unmount, None
        if cb:
            cb()


@dataclass
class OutputSurface:
    """
    Embedded view of a job's streamed output. The follow poller advances
    `scroll_top`; it never runs past the last full viewport.
    """

    job_id: str
    viewport_lines: int = 40
    scroll_top: int = 0
    closed: bool = False
    error: Optional[str] = None
    chunks: List[str] = field(default_factory=list, repr=False)

    def append(self, text: str) -> None:
        if text:
            self.chunks.append(text)

    @property
    def text(self) -> str:
        return "".join(self.chunks)

    @property
    def lines(self) -> List[str]:
        return self.text.splitlines()

    @property
    def max_scroll(self) -> int:
        return max(0, len(self.lines) - self.viewport_lines)

    def scroll_by(self, lines: int) -> int:
        self.scroll_top = min(self.max_scroll, max(0, self.scroll_top + int(lines)))
        return self.scroll_top

    def visible(self) -> str:
        return "\n".join(self.lines[self.scroll_top : self.scroll_top + self.viewport_lines])
