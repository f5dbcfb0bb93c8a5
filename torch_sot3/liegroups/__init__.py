# Copyright Delanoe Pirard / Aedelon. Apache 2.0 License.
"""
Pure PyTorch Lie group implementations.

Provides the scaled rotation group SOT3 on top of a pluggable rotation group.
"""

from torch_sot3.liegroups.base import RotationGroup
from torch_sot3.liegroups.so3 import SO3
from torch_sot3.liegroups.sot3 import SOT3

__all__ = ["RotationGroup", "SO3", "SOT3"]
