from __future__ import annotations

import json
import os

import pytest

from wendy_devtools.store import JsonConfigurationStore


@pytest.fixture
def store(tmp_path):
    return JsonConfigurationStore(str(tmp_path / "settings.json"))


@pytest.fixture
def make_folder(tmp_path):
    """Create a workspace folder, optionally marked as a Wendy project."""

    def _make(name: str, wendy: bool = False, launch: dict | None = None) -> str:
        path = tmp_path / "workspace" / name
        path.mkdir(parents=True)
        if wendy:
            (path / "wendy.json").write_text("{}", encoding="utf-8")
        if launch is not None:
            (path / ".vscode").mkdir()
            (path / ".vscode" / "launch.json").write_text(
                json.dumps(launch), encoding="utf-8"
            )
        return os.path.normpath(str(path))

    return _make


@pytest.fixture
def sdk_dir(tmp_path):
    path = tmp_path / "sdk"
    path.mkdir()
    return str(path)
