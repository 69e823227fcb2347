from __future__ import annotations

import inspect
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote

from jobdash.telemetry.audit import SessionAudit

Handler = Callable[..., Any]

_SEGMENT_RE = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")

# Human labels for the breadcrumb trail, keyed by route name.
BREADCRUMBS: Dict[str, str] = {
    "listLogs": "Logs",
    "viewLog": "viewLog",
    "runJob": "Run job",
}


@dataclass(frozen=True)
class Route:
    pattern: str
    name: str
    handler: Handler
    regex: re.Pattern
    params: Tuple[str, ...]
    converters: Dict[str, Callable[[str], Any]] = field(default_factory=dict)

    def match(self, path: str) -> Optional[List[Any]]:
        m = self.regex.fullmatch(path)
        if not m:
            return None
        args: List[Any] = []
        for name in self.params:
            raw = unquote(m.group(name))
            conv = self.converters.get(name)
            args.append(conv(raw) if conv else raw)
        return args


def compile_pattern(pattern: str, converters: Dict[str, Callable[[str], Any]] | None = None) -> Tuple[re.Pattern, Tuple[str, ...]]:
    """
    `listLogs/page/:page` -> regex with one named group per `:segment`.
    Segments never span a `/`; int-converted segments only match digits.
    """
    converters = converters or {}
    params: List[str] = []
    out: List[str] = []
    pos = 0
    for m in _SEGMENT_RE.finditer(pattern):
        out.append(re.escape(pattern[pos : m.start()]))
        name = m.group(1)
        if name in params:
            raise ValueError(f"duplicate segment :{name} in route {pattern!r}")
        params.append(name)
        body = "[0-9]+" if converters.get(name) is int else "[^/]+"
        out.append(f"(?P<{name}>{body})")
        pos = m.end()
    out.append(re.escape(pattern[pos:]))
    return re.compile("".join(out)), tuple(params)


def normalize_path(path: str) -> str:
    p = (path or "").strip()
    if p.startswith("#"):
        p = p[1:]
    return p.strip("/")


class Router:
    """
    URL-path dispatcher. The first registered pattern matching the whole path
    wins; its handler is invoked with the extracted segments in declared order.
    Unmatched paths are ignored.
    """

    def __init__(self, *, audit: SessionAudit | None = None) -> None:
        self._routes: List[Route] = []
        self._history: List[str] = []
        self._index = -1
        self._audit = audit
        self.current: Optional[str] = None
        self.current_route: Optional[Route] = None

    def add_route(
        self,
        pattern: str,
        name: str,
        handler: Handler,
        *,
        converters: Dict[str, Callable[[str], Any]] | None = None,
    ) -> Route:
        regex, params = compile_pattern(normalize_path(pattern), converters)
        route = Route(
            pattern=normalize_path(pattern),
            name=name,
            handler=handler,
            regex=regex,
            params=params,
            converters=dict(converters or {}),
        )
        self._routes.append(route)
        return route

    def resolve(self, path: str) -> Optional[Tuple[Route, List[Any]]]:
        p = normalize_path(path)
        for route in self._routes:
            args = route.match(p)
            if args is not None:
                return route, args
        return None

    def breadcrumb(self, path: str) -> Optional[str]:
        found = self.resolve(path)
        if not found:
            return None
        return BREADCRUMBS.get(found[0].name)

    async def navigate(self, path: str, *, trigger: bool = True) -> bool:
        """
        Record `path` as the current location and, when `trigger` is set,
        dispatch it. Returns whether a handler ran.
        """
        p = normalize_path(path)
        # A new location drops any forward history.
        del self._history[self._index + 1 :]
        self._history.append(p)
        self._index = len(self._history) - 1
        self.current = p
        if not trigger:
            self.current_route = None
            return False
        return await self._dispatch(p)

    async def back(self) -> bool:
        if self._index <= 0:
            return False
        self._index -= 1
        self.current = self._history[self._index]
        return await self._dispatch(self.current)

    async def forward(self) -> bool:
        if self._index >= len(self._history) - 1:
            return False
        self._index += 1
        self.current = self._history[self._index]
        return await self._dispatch(self.current)

    async def _dispatch(self, path: str) -> bool:
        found = self.resolve(path)
        if not found:
            self.current_route = None
            if self._audit:
                self._audit.write("route.unmatched", {"path": path})
            return False
        route, args = found
        self.current_route = route
        if self._audit:
            self._audit.write("route.dispatched", {"path": path, "route": route.name, "args": args})
        result = route.handler(*args)
        if inspect.isawaitable(result):
            await result
        return True
