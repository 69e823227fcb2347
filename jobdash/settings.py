from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="JOBDASH_", extra="ignore")

    # Backend that owns jobs, execution and log storage.
    base_url: str = "http://localhost:8000"
    timeout_s: float = 15.0

    # First screen shown after startup (the app has no empty initial screen).
    default_route: str = "listLogs"

    # Live-follow of a running job's output.
    follow_interval_s: float = 0.1
    follow_scroll_step: int = 10
    output_viewport_lines: int = 40

    audit_log_path: str = "var/audit/jobdash_audit.jsonl"
