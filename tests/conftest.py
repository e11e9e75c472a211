from __future__ import annotations

from pathlib import Path

import pytest

from skillsync.models import InstallTargets
from tests._fixtures.unit_builder import UnitBuilder


@pytest.fixture
def unit_builder(tmp_path: Path) -> UnitBuilder:
    """Provide a reusable source-tree builder rooted at the pytest tmp_path."""
    return UnitBuilder(tmp_path)


@pytest.fixture
def targets(tmp_path: Path) -> InstallTargets:
    """Two agent skill directories and no settings files."""
    return InstallTargets(
        directories=[tmp_path / "project" / ".claude" / "skills", tmp_path / "project" / ".cursor" / "skills"],
    )
