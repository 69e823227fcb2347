from __future__ import annotations

import json
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class AuditLogger:
    def __init__(self, path: str):
        self.path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

    def new_correlation_id(self) -> str:
        return uuid.uuid4().hex

    def write(
        self,
        correlation_id: str,
        event_type: str,
        payload: Dict[str, Any],
        *,
        actor: str = "jobdash",
        timestamp: Optional[str] = None,
    ) -> None:
        record = {
            "ts": timestamp or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "correlation_id": correlation_id,
            "actor": actor,
            "event_type": event_type,
            "payload": payload,
        }
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")


class SessionAudit:
    """AuditLogger bound to one application session's correlation id."""

    def __init__(self, logger: AuditLogger, correlation_id: str | None = None) -> None:
        self.logger = logger
        self.correlation_id = correlation_id or logger.new_correlation_id()

    def write(self, event_type: str, payload: Dict[str, Any] | None = None) -> None:
        self.logger.write(self.correlation_id, event_type, payload or {})
