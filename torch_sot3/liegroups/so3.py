# Copyright Delanoe Pirard / Aedelon. Apache 2.0 License.
"""
Pure PyTorch implementation of SO3 (3D Rotation).

Data format: rotation matrices [..., 3, 3]
Works for real and complex dtypes on CPU/CUDA/MPS.
"""

from __future__ import annotations

from typing import Optional

import torch
from torch import Tensor

from torch_sot3.config import get_config, resolve_device, resolve_dtype
from torch_sot3.liegroups.base import RotationGroup


def _real(x: Tensor) -> Tensor:
    """Real part for complex tensors, identity otherwise."""
    return x.real if x.is_complex() else x


def _match_point_dims(x: Tensor, batch_ndim: int, point: Tensor, dim: int) -> Tensor:
    """
    Insert singleton dims into x so its batch broadcasts against extra point dims.

    E.g. a [B, 3, 3] batch acting on points [B, N, 3] becomes [B, 1, 3, 3].
    """
    for _ in range(point.dim() - 1 - batch_ndim):
        x = x.unsqueeze(dim)
    return x


class SO3(RotationGroup):
    """
    SO3 rotation group, stored as rotation matrices.

    Pure PyTorch implementation compatible with CPU/CUDA/MPS.
    """

    tangent_dim: int = 3

    def __init__(self, data: Tensor) -> None:
        """
        Create SO3 from tensor data.

        Args:
            data: Tensor of shape [..., 3, 3] containing rotation matrices
        """
        self.data = data

    @classmethod
    def Identity(
        cls,
        batch_shape: tuple[int, ...] = (),
        dtype: Optional[torch.dtype] = None,
        device: Optional[torch.device | str] = None,
    ) -> SO3:
        """Create identity rotation(s)."""
        eye = torch.eye(3, dtype=resolve_dtype(dtype), device=resolve_device(device))
        return cls(eye.expand(*batch_shape, 3, 3).clone())

    @classmethod
    def Random(
        cls,
        batch_shape: tuple[int, ...] = (),
        dtype: Optional[torch.dtype] = None,
        device: Optional[torch.device | str] = None,
        generator: Optional[torch.Generator] = None,
    ) -> SO3:
        """
        Sample rotation(s) uniformly.

        A normalized 4D Gaussian sample is uniform on the unit quaternion
        sphere, hence uniform over SO3.
        """
        q = torch.randn(*batch_shape, 4, dtype=torch.float64, generator=generator)
        q = q / torch.linalg.vector_norm(q, dim=-1, keepdim=True)
        R = cls._quat_to_matrix(q)
        return cls(R.to(dtype=resolve_dtype(dtype), device=resolve_device(device)))

    @classmethod
    def from_matrix(cls, mat: Tensor) -> SO3:
        """
        Create SO3 from 3x3 matrices.

        The matrix is stored as given (copied). Orthonormality is assumed,
        not enforced; use is_valid() to check untrusted input.
        """
        mat = torch.as_tensor(mat)
        if mat.shape[-2:] != (3, 3):
            raise ValueError(f"Expected [..., 3, 3] matrix, got {tuple(mat.shape)}")
        return cls(mat.clone())

    @staticmethod
    def _quat_to_matrix(q: Tensor) -> Tensor:
        """Convert quaternion [qx, qy, qz, qw] to 3x3 rotation matrix."""
        x, y, z, w = q.unbind(-1)

        xx, yy, zz = x * x, y * y, z * z
        xy, xz, yz = x * y, x * z, y * z
        wx, wy, wz = w * x, w * y, w * z

        R = torch.stack(
            [
                1 - 2 * (yy + zz),
                2 * (xy - wz),
                2 * (xz + wy),
                2 * (xy + wz),
                1 - 2 * (xx + zz),
                2 * (yz - wx),
                2 * (xz - wy),
                2 * (yz + wx),
                1 - 2 * (xx + yy),
            ],
            dim=-1,
        )

        return R.view(*q.shape[:-1], 3, 3)

    def matrix(self) -> Tensor:
        """Convert to 3x3 rotation matrix [..., 3, 3]."""
        return self.data.clone()

    @staticmethod
    def skew(omega: Tensor) -> Tensor:
        """
        Skew-symmetric (cross product) matrix of omega.

        skew(a) @ b == cross(a, b)
        """
        if omega.shape[-1] != SO3.tangent_dim:
            raise ValueError(f"Expected [..., 3] vector, got {tuple(omega.shape)}")
        x, y, z = omega.unbind(-1)
        zero = torch.zeros_like(x)
        Omega = torch.stack(
            [zero, -z, y, z, zero, -x, -y, x, zero],
            dim=-1,
        )
        return Omega.view(*omega.shape[:-1], 3, 3)

    @staticmethod
    def vex(Omega: Tensor) -> Tensor:
        """Extract the vector from a skew-symmetric matrix (inverse of skew)."""
        if Omega.shape[-2:] != (3, 3):
            raise ValueError(f"Expected [..., 3, 3] matrix, got {tuple(Omega.shape)}")
        return torch.stack(
            [Omega[..., 2, 1], Omega[..., 0, 2], Omega[..., 1, 0]],
            dim=-1,
        )

    @classmethod
    def exp(cls, omega: Tensor) -> SO3:
        """
        Exponential map (Rodrigues formula).

        R = I + A * [omega]_x + B * [omega]_x^2
        with A = sin(theta) / theta, B = (1 - cos(theta)) / theta^2

        Args:
            omega: Rotation vector [..., 3] (axis * angle)

        Returns:
            SO3 element
        """
        eps = get_config()["small_angle_eps"]

        theta_sq = (omega * omega).sum(dim=-1, keepdim=True)
        small_angle = theta_sq.abs() < eps

        # Keep the untaken branch finite
        theta_sq_safe = torch.where(small_angle, torch.ones_like(theta_sq), theta_sq)
        theta = torch.sqrt(theta_sq_safe)

        A = torch.where(
            small_angle,
            1.0 - theta_sq / 6.0,  # Taylor: 1 - theta^2/6
            torch.sin(theta) / theta,
        )
        B = torch.where(
            small_angle,
            0.5 - theta_sq / 24.0,  # Taylor: 1/2 - theta^2/24
            (1.0 - torch.cos(theta)) / theta_sq_safe,
        )

        K = cls.skew(omega)
        eye = torch.eye(3, dtype=omega.dtype, device=omega.device)
        R = eye + A[..., None] * K + B[..., None] * (K @ K)
        return cls(R)

    def log(self) -> Tensor:
        """
        Logarithm map.

        Three regimes:
        - small angle: omega = (1 + theta^2/6) * vex(R - R^T) / 2
        - general: omega = theta / sin(theta) * vex(R - R^T) / 2
        - near pi (1 + cos(theta) < near_pi_eps): axis recovered from the
          symmetric part of R, sign taken from vex(R - R^T)

        theta = atan2(|vex(R - R^T)| / 2, cos(theta)) for real dtypes.

        Returns:
            Rotation vector [..., 3] with angle in [0, pi]
        """
        cfg = get_config()
        eps = cfg["small_angle_eps"]
        M = self.data

        cos_theta = 0.5 * (M.diagonal(dim1=-2, dim2=-1).sum(-1, keepdim=True) - 1.0)

        # v = sin(theta) * axis
        v = 0.5 * SO3.vex(M - M.transpose(-1, -2))

        if M.is_complex():
            # no atan2 for complex tensors
            theta = torch.acos(cos_theta)
            sin_theta = torch.sin(theta)
        else:
            # acos loses precision near 0 and pi
            sin_theta = torch.linalg.vector_norm(v, dim=-1, keepdim=True)
            theta = torch.atan2(sin_theta, cos_theta)
        theta_sq = theta * theta

        small_angle = theta_sq.abs() < eps
        near_pi = (cos_theta + 1.0).abs() < cfg["near_pi_eps"]
        general = ~(small_angle | near_pi)

        sin_theta = torch.where(general, sin_theta, torch.ones_like(sin_theta))
        factor = torch.where(
            small_angle,
            1.0 + theta_sq / 6.0,  # Taylor: theta/sin(theta)
            theta / sin_theta,
        )
        omega = factor * v

        # (R + R^T)/2 - cos(theta) I = (1 - cos(theta)) * axis axis^T
        eye = torch.eye(3, dtype=M.dtype, device=M.device)
        S = 0.5 * (M + M.transpose(-1, -2)) - cos_theta[..., None] * eye
        col_idx = _real(S.diagonal(dim1=-2, dim2=-1)).argmax(dim=-1)
        col_idx = col_idx[..., None, None].expand(*col_idx.shape, 1, 3)
        axis = torch.gather(S.transpose(-1, -2), -2, col_idx).squeeze(-2)
        axis = axis / torch.sqrt((axis * axis).sum(dim=-1, keepdim=True))
        # sin(theta) >= 0, so the axis must agree with v
        sign = torch.where(_real((axis * v).sum(dim=-1, keepdim=True)) < 0, -1.0, 1.0)
        omega_pi = sign * theta * axis

        return torch.where(near_pi, omega_pi, omega)

    def __mul__(self, other: SO3) -> SO3:
        """Compose rotations: self * other."""
        if not isinstance(other, SO3):
            return NotImplemented
        return SO3(self.data @ other.data)

    def __matmul__(self, other: SO3) -> SO3:
        """Alias for __mul__ to support @ operator."""
        return self.__mul__(other)

    def inverse(self) -> SO3:
        """Inverse rotation (transpose for an orthonormal matrix)."""
        return SO3(self.data.transpose(-1, -2).clone())

    def invert(self) -> None:
        """Invert in place."""
        self.data = self.data.transpose(-1, -2).clone()

    def set_identity(self) -> None:
        """Reset to the identity rotation in place."""
        eye = torch.eye(3, dtype=self.data.dtype, device=self.data.device)
        self.data = eye.expand_as(self.data).clone()

    def act(self, point: Tensor) -> Tensor:
        """
        Rotate 3D point(s).

        Args:
            point: 3D point(s) [..., 3]; extra leading dims beyond the batch
                   shape are broadcast (e.g. [B, N, 3] for a [B] batch)

        Returns:
            Rotated point(s) [..., 3]
        """
        R = _match_point_dims(self.data, len(self.shape), point, -3)
        return (R @ point.unsqueeze(-1)).squeeze(-1)

    def apply_inverse(self, point: Tensor) -> Tensor:
        """Rotate 3D point(s) by the inverse rotation: R^T @ p."""
        R = _match_point_dims(self.data, len(self.shape), point, -3)
        return (R.transpose(-1, -2) @ point.unsqueeze(-1)).squeeze(-1)

    def is_valid(self, atol: Optional[float] = None) -> Tensor:
        """Check R^T R == I, det(R) == 1 and finiteness, per batch element."""
        if atol is None:
            atol = get_config()["validation"]["atol"]
        M = self.data
        eye = torch.eye(3, dtype=M.dtype, device=M.device)

        orth_err = (M.transpose(-1, -2) @ M - eye).abs().amax(dim=(-2, -1))
        det_err = (torch.linalg.det(M) - 1.0).abs()
        finite = torch.isfinite(M).all(dim=-1).all(dim=-1)

        return finite & (orth_err <= atol) & (det_err <= atol)

    def clone(self) -> SO3:
        return SO3(self.data.clone())

    def to(self, *args, **kwargs) -> SO3:
        """Move/cast the underlying tensor (same arguments as Tensor.to)."""
        return SO3(self.data.to(*args, **kwargs))

    @property
    def shape(self) -> tuple[int, ...]:
        """Batch shape."""
        return tuple(self.data.shape[:-2])

    @property
    def dtype(self) -> torch.dtype:
        return self.data.dtype

    @property
    def device(self) -> torch.device:
        return self.data.device

    def __repr__(self) -> str:
        return f"SO3(shape={self.shape}, dtype={self.dtype})"
