"""Pytest configuration for formula-blend tests."""

import numpy as np
import pytest

from formula_blend.constants import CHANNEL_NAMES


@pytest.fixture
def random_channels() -> dict[str, np.ndarray]:
    """Eight 16x16 channel planes of uniform values in [0, 1]."""
    rng = np.random.default_rng(0)
    return {name: rng.random((16, 16)) for name in CHANNEL_NAMES}
