# Copyright Delanoe Pirard / Aedelon. Apache 2.0 License.
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from torch_sot3.config import reset_config  # noqa: E402

CONFIG_DIR = Path(__file__).parent.parent / "configs"


@pytest.fixture(autouse=True)
def _default_config():
    """Every test starts and ends with the built-in defaults."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config_dir() -> Path:
    return CONFIG_DIR
