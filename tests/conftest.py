from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # settings read WTRACKER_* variables and a local .env file
    for name in list(os.environ):
        if name.upper().startswith("WTRACKER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
