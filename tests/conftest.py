"""Shared fixtures for tubeport tests."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture()
def base_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect all tubeport runtime files to a temporary directory.

    Patches ``tubeport.config.get_base_dir`` so that nothing touches the real
    ``~/.tubeport/``.
    """
    fake_base = tmp_path / ".tubeport"
    fake_base.mkdir()
    (fake_base / "logs").mkdir()

    monkeypatch.setattr("tubeport.config.get_base_dir", lambda: fake_base)

    return fake_base
