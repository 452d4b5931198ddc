import numpy as np
import pytest

from eeg_bandpower.core.config import EngineConfig
from eeg_bandpower.engine.engine import SpectralEngine


@pytest.fixture
def config():
    """Default Muse-style config with a deterministic fallback path"""
    return EngineConfig(fallback_jitter=False)


@pytest.fixture
def engine(config):
    eng = SpectralEngine(config)
    yield eng
    eng.stop()


@pytest.fixture
def fallback_engine():
    eng = SpectralEngine(EngineConfig(use_fft=False, fallback_jitter=False))
    yield eng
    eng.stop()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)

