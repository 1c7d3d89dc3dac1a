"""
pytest configuration and fixtures for frame decoder tests.

Provides reusable fixtures for:
- Decoder instances per layout
- Reference vector and profile files
- Hypothesis property-based testing configuration
"""

import os
import pytest
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent

# Add project paths
sys.path.insert(0, str(ROOT / "tools"))

from hypothesis import settings, Verbosity, Phase

# Default profile: balanced speed and coverage
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
)

# CI profile: more thorough testing
settings.register_profile(
    "ci",
    max_examples=500,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)

# Dev profile: fast iteration
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
)

# Debug profile: verbose output
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture
def v1_decoder():
    from frame_decoder import FrameDecoder, LayoutVersion
    return FrameDecoder(LayoutVersion.V1)


@pytest.fixture
def v2_decoder():
    from frame_decoder import FrameDecoder, LayoutVersion
    return FrameDecoder(LayoutVersion.V2)


@pytest.fixture
def vectors_path():
    return ROOT / "vectors" / "frame_vectors.yaml"


@pytest.fixture
def profiles_path():
    return ROOT / "profiles" / "example_profiles.yaml"

