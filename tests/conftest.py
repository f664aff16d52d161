"""shared fixtures: seeded rng and synthetic hands."""

import numpy as np
import pytest

from graspalign.core import Hand


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_hand(rng):
    """
    factory for a synthetic hand: 20 joints scattered a few cm around center.

    the spread is full rank, so every hand on its own pins down a rotation.
    """
    def _make(hand_id, center=(0.0, 0.0, 0.0), spread=0.04):
        joints = np.asarray(center, dtype=np.float64) + rng.normal(scale=spread, size=(5, 4, 3))
        return Hand(hand_id, joints)
    return _make
