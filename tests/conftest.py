from __future__ import annotations

import os
from pathlib import Path

import pytest

from jobdash.settings import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Keep tests deterministic and isolated from developer machine env.
    """
    for k in list(os.environ.keys()):
        if k.startswith("JOBDASH_") or k.startswith("MOCK_API_"):
            monkeypatch.delenv(k, raising=False)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        base_url="http://backend.test",
        audit_log_path=str(tmp_path / "audit.jsonl"),
        follow_interval_s=0.005,
        follow_scroll_step=3,
        output_viewport_lines=5,
    )
