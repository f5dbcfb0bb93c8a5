# Copyright Delanoe Pirard / Aedelon. Apache 2.0 License.
"""
torch-sot3: the scaled rotation group SOT(3) = SO(3) x R+ in PyTorch.
"""

from torch_sot3.config import get_config, load_config
from torch_sot3.liegroups import SO3, SOT3, RotationGroup

__version__ = "0.1.0"

__all__ = ["RotationGroup", "SO3", "SOT3", "get_config", "load_config"]
