# Copyright Delanoe Pirard / Aedelon. Apache 2.0 License.
"""
Pure PyTorch implementation of SOT3 (Scaled Rotation).

SOT3 = SO3 x R+, the group of rotations composed with a positive isotropic
scale. Group elements pair a rotation with a scale tensor; the Lie algebra
is represented by 4-vectors [wx, wy, wz, log_scale].

Invariants (scale > 0, orthonormal rotation) are preconditions and are not
checked on the hot path. Violations propagate as non-finite values; see
is_valid() and the validation.debug_checks config flag.
"""

from __future__ import annotations

import warnings
from typing import Optional

import torch
from torch import Tensor

from torch_sot3.config import get_config, resolve_device, resolve_dtype
from torch_sot3.liegroups.base import RotationGroup
from torch_sot3.liegroups.so3 import SO3, _match_point_dims


class SOT3:
    """
    SOT3 scaled rotation (rotation + isotropic scale, no translation).

    Works with any RotationGroup implementation; SO3 is the default.
    Elements may be batched: rotation [...] and scale [...] share one batch shape.
    """

    tangent_dim: int = 4

    def __init__(self, rotation: RotationGroup, scale: Tensor | float) -> None:
        """
        Create SOT3 from a rotation and a scale.

        No validation is performed; the caller must supply scale > 0.

        Args:
            rotation: RotationGroup element with batch shape [...]
            scale: Tensor broadcastable to [...] or a python number
        """
        if not isinstance(scale, Tensor):
            scale = torch.full(
                rotation.shape, scale, dtype=rotation.dtype, device=rotation.device
            )
        elif scale.shape != rotation.shape:
            scale = torch.broadcast_to(scale, rotation.shape).clone()
        self.rotation = rotation
        self.scale = scale

    @classmethod
    def Identity(
        cls,
        batch_shape: tuple[int, ...] = (),
        dtype: Optional[torch.dtype] = None,
        device: Optional[torch.device | str] = None,
        rotation_type: type[RotationGroup] = SO3,
    ) -> SOT3:
        """Create identity transformation(s): identity rotation, scale 1."""
        rotation = rotation_type.Identity(batch_shape, dtype=dtype, device=device)
        scale = torch.ones(batch_shape, dtype=rotation.dtype, device=rotation.device)
        return cls(rotation, scale)

    @classmethod
    def Random(
        cls,
        batch_shape: tuple[int, ...] = (),
        dtype: Optional[torch.dtype] = None,
        device: Optional[torch.device | str] = None,
        generator: Optional[torch.Generator] = None,
        rotation_type: type[RotationGroup] = SO3,
    ) -> SOT3:
        """
        Sample random transformation(s) for testing.

        Rotation is uniform; scale = exp(u) with u uniform in
        [-log_scale_bound, log_scale_bound]. This is not a meaningful
        distribution over the scale subgroup.
        """
        bound = get_config()["random"]["log_scale_bound"]
        rotation = rotation_type.Random(
            batch_shape, dtype=dtype, device=device, generator=generator
        )
        u = torch.rand(batch_shape, dtype=torch.float64, generator=generator)
        scale = torch.exp((2.0 * u - 1.0) * bound)
        return cls(rotation, scale.to(dtype=rotation.dtype, device=rotation.device))

    @classmethod
    def from_matrix(
        cls, mat: Tensor, rotation_type: type[RotationGroup] = SO3
    ) -> SOT3:
        """
        Create SOT3 from 4x4 matrices (the as_matrix() layout).

        Rotation is read from mat[..., :3, :3] through the rotation type's
        own from_matrix; scale from mat[..., 3, 3]. Other entries are ignored.
        """
        mat = torch.as_tensor(mat)
        if mat.shape[-2:] != (4, 4):
            raise ValueError(f"Expected [..., 4, 4] matrix, got {tuple(mat.shape)}")
        T = cls(rotation_type.from_matrix(mat[..., :3, :3]), mat[..., 3, 3].clone())
        _debug_check(T, "from_matrix")
        return T

    # ------------------------------------------------------------------
    # Lie algebra
    # ------------------------------------------------------------------

    @staticmethod
    def wedge(u: Tensor, rotation_type: type[RotationGroup] = SO3) -> Tensor:
        """
        Algebra vector [..., 4] to its 4x4 matrix form.

        U[:3, :3] = skew(u[:3]), U[3, 3] = u[3], zero elsewhere.
        """
        if u.shape[-1] != SOT3.tangent_dim:
            raise ValueError(f"Expected [..., 4] vector, got {tuple(u.shape)}")
        U = torch.zeros(*u.shape[:-1], 4, 4, dtype=u.dtype, device=u.device)
        U[..., :3, :3] = rotation_type.skew(u[..., :3])
        U[..., 3, 3] = u[..., 3]
        return U

    @staticmethod
    def vee(U: Tensor, rotation_type: type[RotationGroup] = SO3) -> Tensor:
        """Inverse of wedge: 4x4 algebra matrix to vector [..., 4]."""
        if U.shape[-2:] != (4, 4):
            raise ValueError(f"Expected [..., 4, 4] matrix, got {tuple(U.shape)}")
        omega = rotation_type.vex(U[..., :3, :3])
        return torch.cat([omega, U[..., 3:4, 3]], dim=-1)

    @classmethod
    def exp(
        cls, w: Tensor, rotation_type: type[RotationGroup] = SO3
    ) -> SOT3:
        """
        Exponential map.

        Args:
            w: Algebra vector [..., 4] = [omega(3), log_scale(1)]

        Returns:
            SOT3 with rotation = exp(omega), scale = exp(log_scale) > 0
        """
        if w.shape[-1] != cls.tangent_dim:
            raise ValueError(f"Expected [..., 4] vector, got {tuple(w.shape)}")
        return cls(rotation_type.exp(w[..., :3]), torch.exp(w[..., 3]))

    def log(self) -> Tensor:
        """
        Logarithm map, usable as SOT3.log(T) or T.log().

        Returns:
            Algebra vector [..., 4] = [log(rotation), log(scale)]
            Non-finite if scale <= 0.
        """
        _debug_check(self, "log")
        omega = self.rotation.log()
        return torch.cat([omega, torch.log(self.scale)[..., None]], dim=-1)

    # ------------------------------------------------------------------
    # Group operations
    # ------------------------------------------------------------------

    def set_identity(self) -> None:
        """Reset to the identity transformation in place."""
        rotation = self.rotation.clone()
        rotation.set_identity()
        self.rotation = rotation
        self.scale = torch.ones_like(self.scale)

    def act(self, point: Tensor) -> Tensor:
        """
        Transform point(s): p' = s * R @ p.

        Args:
            point: 3D point(s) [..., 3]

        Returns:
            Transformed point(s) with same shape as input
        """
        s = _match_point_dims(self.scale, len(self.shape), point, -1)
        return s[..., None] * self.rotation.act(point)

    def apply_inverse(self, point: Tensor) -> Tensor:
        """
        Undo this transformation on point(s): p = R^T @ p' / s.

        Cheaper than self.inverse().act(point).
        """
        s = _match_point_dims(self.scale, len(self.shape), point, -1)
        return self.rotation.apply_inverse(point) / s[..., None]

    def __mul__(self, other: SOT3 | Tensor) -> SOT3 | Tensor:
        """
        Compose two transformations, or transform points.

        For T1 = (R1, s1) and T2 = (R2, s2):
        T1 * T2 = (R1 * R2, s1 * s2)

        For a tensor of points p [..., 3]: T * p == T.act(p)
        """
        if isinstance(other, SOT3):
            return SOT3(self.rotation * other.rotation, self.scale * other.scale)
        if isinstance(other, Tensor):
            return self.act(other)
        return NotImplemented

    def __matmul__(self, other: SOT3 | Tensor) -> SOT3 | Tensor:
        """Alias for __mul__ to support @ operator."""
        return self.__mul__(other)

    def invert(self) -> None:
        """Invert in place: R -> R^-1, s -> 1/s."""
        _debug_check(self, "invert")
        self.rotation = self.rotation.inverse()
        self.scale = 1.0 / self.scale

    def inverse(self) -> SOT3:
        """
        Compute inverse transformation.

        For T = (R, s), T^-1 = (R^-1, s^-1)
        """
        _debug_check(self, "inverse")
        return SOT3(self.rotation.inverse(), 1.0 / self.scale)

    # ------------------------------------------------------------------
    # Matrix forms
    # ------------------------------------------------------------------

    def as_matrix(self) -> Tensor:
        """
        Convert to 4x4 matrix.

        Returns:
            [..., 4, 4] matrix where:
            M[:3, :3] = R
            M[3, 3] = s
            zero elsewhere
        """
        R = self.rotation.matrix()
        M = torch.zeros(*self.shape, 4, 4, dtype=R.dtype, device=R.device)
        M[..., :3, :3] = R
        M[..., 3, 3] = self.scale
        return M

    def as_matrix3(self) -> Tensor:
        """Linear map acting on points: s * R [..., 3, 3]."""
        return self.scale[..., None, None] * self.rotation.matrix()

    # ------------------------------------------------------------------
    # Validation and bookkeeping
    # ------------------------------------------------------------------

    def is_valid(self, atol: Optional[float] = None) -> Tensor:
        """
        Check the group invariant per batch element.

        Valid means a valid rotation and a finite scale that is positive
        (real dtypes) or non-zero (complex dtypes).

        Returns:
            Boolean tensor [...]
        """
        s = self.scale
        if s.is_complex():
            scale_ok = torch.isfinite(s) & (s != 0)
        else:
            scale_ok = torch.isfinite(s) & (s > 0)
        return self.rotation.is_valid(atol) & scale_ok

    def clone(self) -> SOT3:
        return SOT3(self.rotation.clone(), self.scale.clone())

    def to(
        self,
        dtype: Optional[torch.dtype | str] = None,
        device: Optional[torch.device | str] = None,
    ) -> SOT3:
        """Cast/move to another dtype or device (names as in the config file)."""
        dtype = resolve_dtype(dtype) if dtype is not None else self.dtype
        device = resolve_device(device) if device is not None else self.device
        return SOT3(
            self.rotation.to(dtype=dtype, device=device),
            self.scale.to(dtype=dtype, device=device),
        )

    @property
    def shape(self) -> tuple[int, ...]:
        """Batch shape."""
        return self.rotation.shape

    @property
    def dtype(self) -> torch.dtype:
        return self.scale.dtype

    @property
    def device(self) -> torch.device:
        return self.scale.device

    def __repr__(self) -> str:
        return f"SOT3(shape={self.shape}, dtype={self.dtype})"


def _debug_check(T: SOT3, op: str) -> None:
    """Warn about invariant violations when validation.debug_checks is enabled."""
    cfg = get_config()["validation"]
    if not cfg["debug_checks"]:
        return
    valid = T.is_valid(cfg["atol"])
    n_bad = int((~valid).sum().item())
    if n_bad:
        warnings.warn(
            f"SOT3.{op}: {n_bad}/{valid.numel()} element(s) violate the "
            "rotation / positive scale invariant",
            RuntimeWarning,
            stacklevel=3,
        )
