# Copyright Delanoe Pirard / Aedelon. Apache 2.0 License.
"""
Tests for SOT3 conversion utilities.

Usage:
    pytest tests/test_lietorch_utils.py
"""

import sys

import pytest
import torch

from torch_sot3.liegroups import SO3, SOT3
from torch_sot3.lietorch_utils import as_matrix_batch, as_SO3, from_rotation_scale


def test_as_SO3_drops_scale_and_flattens():
    T = SOT3.Random((2, 3), generator=torch.Generator().manual_seed(0))

    R = as_SO3(T)
    assert isinstance(R, SO3)
    assert R.shape == (6,)
    torch.testing.assert_close(R.matrix(), T.rotation.matrix().reshape(6, 3, 3))


def test_as_SO3_passthrough():
    R = SO3.Identity()
    assert as_SO3(R) is R


def test_as_matrix_batch():
    T = SOT3.Random((2, 2), generator=torch.Generator().manual_seed(1))
    M = as_matrix_batch(T)
    assert M.shape == (4, 4, 4)
    torch.testing.assert_close(M[:, 3, 3], T.scale.reshape(4))


def test_from_rotation_scale_layouts():
    R = SO3.Random((5,), generator=torch.Generator().manual_seed(2)).matrix()

    flat = from_rotation_scale(R, torch.full((5,), 2.0))
    column = from_rotation_scale(R, torch.full((5, 1), 2.0))
    number = from_rotation_scale(R, 2.0)
    scalar = from_rotation_scale(R, torch.tensor(2.0))

    for T in (flat, column, number, scalar):
        assert T.shape == (5,)
        assert T.scale.shape == (5,)
        assert T.dtype == R.dtype
        torch.testing.assert_close(T.as_matrix3(), 2.0 * R)


def main():
    return pytest.main([__file__, "-v"])


if __name__ == "__main__":
    sys.exit(main())
