from __future__ import annotations

import pytest

from podflow.config import Settings, WorkflowConfig


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        log_dir=str(tmp_path / "logs"),
        workflow=WorkflowConfig(backoff_min_s=0, backoff_max_s=0),
    )
