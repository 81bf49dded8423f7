"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

NUM_DISTANCES = 316


def random_distances(seed: int) -> np.ndarray:
    """Generate a random distance vector simulating one capture."""
    rng = np.random.default_rng(seed)
    return rng.uniform(0.05, 1.5, NUM_DISTANCES)


@pytest.fixture(scope="session")
def codec():
    """
    A ready BCH codec shared by the whole test session.

    Building the generator polynomial for t=455 takes a moment, so it is
    done once.
    """
    from facesketch.bch import BCHCodec

    with BCHCodec() as c:
        yield c


@pytest.fixture(scope="session")
def sketch(codec):
    from facesketch.fuzzy import SecureSketch

    return SecureSketch(codec)


@pytest.fixture(scope="module")
def distances():
    return random_distances(1234)


@pytest.fixture(scope="module")
def registered(sketch, distances):
    """A frame registered once and reused across tests in a module."""
    record = sketch.register(distances)
    return {"distances": distances, "record": record}
