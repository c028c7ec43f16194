from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


# Allow `pytest` to import the package directly from the src layout
# without requiring an editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def random_point(rng):
    """Return ``draw(network) -> (u, p)`` with positive random values."""

    def draw(network, u_range=(1.0, 100.0), p_range=(0.1, 5.0)):
        u = rng.uniform(*u_range, size=len(network.species))
        p = rng.uniform(*p_range, size=len(network.parameters))
        return u, p

    return draw
