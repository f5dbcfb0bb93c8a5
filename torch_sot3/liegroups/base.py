# Copyright Delanoe Pirard / Aedelon. Apache 2.0 License.
"""
Abstract rotation group interface.

SOT3 is written against this contract only, so any rotation representation
(matrix, quaternion, ...) that implements it can be plugged in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import torch
from torch import Tensor


class RotationGroup(ABC):
    """
    Abstract interface for SO(3) implementations.

    All implementations must provide:
    - Construction (identity, random sampling, from/to 3x3 matrices)
    - Group operations (composition, inversion)
    - Exponential/logarithm maps and the skew/vex pair
    - Point application and inverse point application

    Elements may carry leading batch dimensions; `shape` reports them.
    """

    @classmethod
    @abstractmethod
    def Identity(
        cls,
        batch_shape: tuple[int, ...] = (),
        dtype: Optional[torch.dtype] = None,
        device: Optional[torch.device | str] = None,
    ) -> RotationGroup:
        """Create identity rotation(s)."""
        ...

    @classmethod
    @abstractmethod
    def Random(
        cls,
        batch_shape: tuple[int, ...] = (),
        dtype: Optional[torch.dtype] = None,
        device: Optional[torch.device | str] = None,
        generator: Optional[torch.Generator] = None,
    ) -> RotationGroup:
        """Sample rotation(s) uniformly."""
        ...

    @classmethod
    @abstractmethod
    def from_matrix(cls, mat: Tensor) -> RotationGroup:
        """
        Create rotation(s) from 3x3 matrices.

        No validation is performed; non-orthonormal input is handled by the
        implementation's own coercion policy.

        Args:
            mat: Matrices [..., 3, 3]
        """
        ...

    @abstractmethod
    def matrix(self) -> Tensor:
        """Convert to 3x3 rotation matrices [..., 3, 3]."""
        ...

    @abstractmethod
    def __mul__(self, other: RotationGroup) -> RotationGroup:
        """Compose rotations: self * other."""
        ...

    @abstractmethod
    def inverse(self) -> RotationGroup:
        """Return the inverse rotation, leaving self unchanged."""
        ...

    @abstractmethod
    def invert(self) -> None:
        """Invert in place."""
        ...

    @abstractmethod
    def set_identity(self) -> None:
        """Reset to the identity rotation in place."""
        ...

    @classmethod
    @abstractmethod
    def exp(cls, omega: Tensor) -> RotationGroup:
        """
        Exponential map from so3 to SO3.

        Args:
            omega: Rotation vector [..., 3] (axis * angle)
        """
        ...

    @abstractmethod
    def log(self) -> Tensor:
        """
        Logarithm map from SO3 to so3.

        Returns:
            Rotation vector [..., 3]
        """
        ...

    @staticmethod
    @abstractmethod
    def skew(omega: Tensor) -> Tensor:
        """Map vectors [..., 3] to skew-symmetric matrices [..., 3, 3]."""
        ...

    @staticmethod
    @abstractmethod
    def vex(Omega: Tensor) -> Tensor:
        """Inverse of skew: skew-symmetric matrices [..., 3, 3] to vectors [..., 3]."""
        ...

    @abstractmethod
    def act(self, point: Tensor) -> Tensor:
        """Rotate 3D point(s) [..., 3]."""
        ...

    @abstractmethod
    def apply_inverse(self, point: Tensor) -> Tensor:
        """Rotate 3D point(s) [..., 3] by the inverse rotation."""
        ...

    @abstractmethod
    def is_valid(self, atol: Optional[float] = None) -> Tensor:
        """Boolean tensor [...] flagging orthonormal, det +1, finite elements."""
        ...

    @abstractmethod
    def clone(self) -> RotationGroup:
        """Return an independent copy."""
        ...

    @abstractmethod
    def to(self, *args, **kwargs) -> RotationGroup:
        """Move/cast the underlying data (same arguments as Tensor.to)."""
        ...

    @property
    @abstractmethod
    def shape(self) -> tuple[int, ...]:
        """Batch shape."""
        ...

    @property
    @abstractmethod
    def dtype(self) -> torch.dtype:
        """Scalar type of the underlying tensor."""
        ...

    @property
    @abstractmethod
    def device(self) -> torch.device:
        """Device of the underlying tensor."""
        ...
