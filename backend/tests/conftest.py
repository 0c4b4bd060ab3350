"""Shared fixtures for the loop generator tests."""
import pytest

from backend.config import Settings
from backend.models import Interpretation, TriggerType


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every directory into a per-test temp dir, no credentials."""
    return Settings(
        temp_dir=tmp_path / "temp",
        public_dir=tmp_path / "public",
        public_base_url="/generated",
        publish_timeout_seconds=2.0,
    )


@pytest.fixture
def sand_interpretation():
    """A small, fixed interpretation for fast rendering and synthesis."""
    return Interpretation(
        trigger=TriggerType.KINETIC_SAND,
        title="Crisp Kinetic Sand Loop",
        visual_mood="crisp",
        motion_description="A blade slices slowly through a layered sand block",
        palette=("#f4d6b0", "#e8a87c", "#c38d9e", "#41b3a3"),
        duration_seconds=6,
        fps=24,
        motion_cycles=3,
        seed=1234,
    )
