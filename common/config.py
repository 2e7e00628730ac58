from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml


DEFAULT_CONFIG_PATH = "config/params.yaml"

DEFAULTS: Dict[str, Any] = {
    "store": {
        "cloud_name": None,
        "upload_preset": None,
        "api_key": None,
        "api_secret": None,
        "folder": "cambodia-travel",
        "api_base": "https://api.cloudinary.com/v1_1",
        "timeout_s": 60.0,
        "proxy_url": None,
    },
    "upload": {"max_width": 1920, "quality": 0.85},
    "display": {
        "transform": "c_fill,w_1920,h_1080,f_webp,q_auto",
        "thumbnail": "c_fill,w_400,h_300,f_webp,q_auto",
    },
    "nearby": {"k": 4, "max_radius_km": 50.0},
    "records": {"url": None, "api_key": None, "table": "places"},
    "logging": {"level": "INFO"},
}

# env var -> (section, key); environment wins over the YAML file
ENV_OVERRIDES: Dict[str, tuple] = {
    "CLOUDINARY_CLOUD_NAME": ("store", "cloud_name"),
    "CLOUDINARY_UPLOAD_PRESET": ("store", "upload_preset"),
    "CLOUDINARY_API_KEY": ("store", "api_key"),
    "CLOUDINARY_API_SECRET": ("store", "api_secret"),
    "SUPABASE_URL": ("records", "url"),
    "SUPABASE_ANON_KEY": ("records", "api_key"),
    "LOG_LEVEL": ("logging", "level"),
}


def _deep_merge(base: Dict[str, Any], over: Mapping[str, Any]) -> Dict[str, Any]:
    for k, v in over.items():
        if isinstance(v, Mapping) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(
    path: str = DEFAULT_CONFIG_PATH,
    env: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """
    Load settings: built-in defaults <- YAML file (if present) <- environment.

    A missing file is not an error; the defaults are used instead.
    """
    cfg = copy.deepcopy(DEFAULTS)
    p = Path(path)
    if p.exists():
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"{path}: top level must be a mapping")
        _deep_merge(cfg, data)

    env = os.environ if env is None else env
    for var, (section, key) in ENV_OVERRIDES.items():
        val = env.get(var)
        if val:
            cfg.setdefault(section, {})[key] = val
    return cfg
