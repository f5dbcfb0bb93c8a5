# Copyright Delanoe Pirard / Aedelon. Apache 2.0 License.
"""Configuration management for torch-sot3."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Optional

import torch
import yaml


config: dict[str, Any] = {}


def load_config(config_path: str | Path) -> dict[str, Any]:
    """Load configuration from YAML file with inheritance support.

    Keys missing from the file (and its parents) fall back to DEFAULT_CONFIG.
    """
    global config
    cfg = _read_with_inheritance(Path(config_path))

    merged = copy.deepcopy(DEFAULT_CONFIG)
    _deep_update(merged, cfg)

    config = merged
    print(f"[Config] Loaded {config_path}")
    return config


def _read_with_inheritance(config_path: Path) -> dict[str, Any]:
    with open(config_path) as f:
        cfg = yaml.safe_load(f) or {}

    # Handle config inheritance (supports both "inherit" and "_base_" keys)
    inherit_key = None
    if "inherit" in cfg:
        inherit_key = "inherit"
    elif "_base_" in cfg:
        inherit_key = "_base_"

    if inherit_key:
        base_path = Path(cfg[inherit_key])
        if not base_path.is_absolute():
            base_path = config_path.parent / cfg[inherit_key]
        base_cfg = _read_with_inheritance(base_path)
        del cfg[inherit_key]
        # Merge: base config updated with current config
        _deep_update(base_cfg, cfg)
        cfg = base_cfg

    return cfg


def _deep_update(base: dict, update: dict) -> None:
    """Recursively update base dict with update dict."""
    for key, value in update.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_update(base[key], value)
        else:
            base[key] = value


# Default configuration
DEFAULT_CONFIG: dict[str, Any] = {
    "dtype": "float64",
    "device": "cpu",
    "small_angle_eps": 1e-8,
    # SO3.log reads the axis from the symmetric part when 1 + cos(theta) < this
    "near_pi_eps": 1e-2,
    "random": {
        # Random() draws log-scale uniformly in [-bound, bound]
        "log_scale_bound": 1.0,
    },
    "validation": {
        "atol": 1e-6,
        "debug_checks": False,
    },
}


def get_config() -> dict[str, Any]:
    """Get current configuration, using defaults if not loaded."""
    if not config:
        return copy.deepcopy(DEFAULT_CONFIG)
    return config


def reset_config() -> None:
    """Drop any loaded configuration (for testing)."""
    global config
    config = {}


_DTYPES: dict[str, torch.dtype] = {
    "float32": torch.float32,
    "float64": torch.float64,
    "complex64": torch.complex64,
    "complex128": torch.complex128,
}


def resolve_dtype(dtype: Optional[str | torch.dtype] = None) -> torch.dtype:
    """Map a dtype name (or None for the configured default) to a torch.dtype."""
    if dtype is None:
        dtype = get_config()["dtype"]
    if isinstance(dtype, torch.dtype):
        return dtype
    if dtype not in _DTYPES:
        raise ValueError(
            f"Unknown dtype: {dtype} (expected one of {sorted(_DTYPES)})"
        )
    return _DTYPES[dtype]


def resolve_device(
    device: Optional[torch.device | str] = None,
) -> torch.device:
    """Map a device string (or None for the configured default) to a torch.device."""
    if device is None:
        device = get_config()["device"]
    return torch.device(device)
