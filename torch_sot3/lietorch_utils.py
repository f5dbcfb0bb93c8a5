# Copyright Delanoe Pirard / Aedelon. Apache 2.0 License.
"""
Utilities for Lie group conversions.

Provides SOT3 <-> SO3 / raw tensor conversions.
"""

import einops
import torch
from torch import Tensor

from torch_sot3.liegroups import SO3, SOT3


def as_SO3(X: SOT3) -> SO3:
    """
    Convert SOT3 to SO3 by dropping the scale component.

    Batch dimensions are flattened into a single leading dimension.

    Args:
        X: SOT3 transformation (an SO3 is passed through unchanged)

    Returns:
        SO3 rotations [N, 3, 3]
    """
    if isinstance(X, SO3):
        return X

    R = einops.rearrange(X.rotation.matrix(), "... i j -> (...) i j")
    return SO3(R)


def as_matrix_batch(X: SOT3) -> Tensor:
    """
    Stack the 4x4 matrix forms of a (batched) SOT3 into [N, 4, 4].
    """
    return einops.rearrange(X.as_matrix(), "... i j -> (...) i j")


def from_rotation_scale(R: Tensor, s: Tensor | float) -> SOT3:
    """
    Build SOT3 from raw tensors.

    Args:
        R: Rotation matrices [..., 3, 3]
        s: Scales [...] (or a single number)

    Returns:
        SOT3 wrapping both, unvalidated
    """
    rotation = SO3.from_matrix(R)
    if not isinstance(s, Tensor):
        return SOT3(rotation, s)

    if s.dim() == R.dim() - 1 and s.shape[-1] == 1:
        # Accept the [..., 1] scale layout used by Sim3 data
        s = einops.rearrange(s, "... 1 -> ...")
    return SOT3(rotation, s.to(dtype=R.dtype, device=R.device))
