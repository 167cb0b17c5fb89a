"""Shared fixtures for seisquery tests."""

import logging

import pytest

from seisquery.settings import reset_settings
from seisquery.store.volume import Volume
from tests.fixtures.synthetic import (
    create_store,
    random_data,
    ramp_data,
    well_known_data,
)


@pytest.fixture(autouse=True)
def default_settings():
    """Every test starts from default settings."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def well_known() -> Volume:
    """3 x 2 x 4 volume, time axis 4 .. 16 ms."""
    return Volume(create_store(well_known_data()))


@pytest.fixture
def samples10() -> Volume:
    """3 x 2 x 10 volume of random samples, time axis 4 .. 40 ms."""
    return Volume(create_store(random_data()))


@pytest.fixture
def ramp10() -> Volume:
    """3 x 2 x 10 volume whose traces grow by 1 per sample, time axis 4 .. 40 ms."""
    return Volume(create_store(ramp_data()))


@pytest.fixture
def metadata(well_known):
    return well_known.metadata


@pytest.fixture
def restore_logger():
    """Undo setup_logging side effects on the package logger."""
    logger = logging.getLogger("seisquery")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
