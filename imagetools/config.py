"""
Runtime configuration and system-dependency discovery.

Settings come from a YAML file (explicit path, else ``$IMAGETOOLS_CONFIG``)
layered over built-in defaults.  This module also locates the external
archiver used when many output images are packed into one file.

Example file::

    workers: 4
    locale: zh-CN
    size_limits:
      max_width: 1024
    delivery:
      overflow_threshold: 9
      overflow_send_type: file
      zip_file_type: 7z
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .delivery import DeliveryConfig, SendType, ZipType
from .exceptions import ZipFailed
from .specs import SizeLimits

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "IMAGETOOLS_CONFIG"


@dataclass(frozen=True)
class ImageToolsConfig:
    """Top-level configuration."""
    size_limits: SizeLimits = field(default_factory=SizeLimits)
    workers: int = 4                # 0 = auto-detect from CPU count
    fps_warn_threshold_ms: float = 20.0
    max_images: int = 64
    locale: str = "en-US"
    http_timeout_s: float = 30.0
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)


def _merge(cls_instance: Any, data: Mapping[str, Any], section: str) -> Any:
    known = {f.name for f in fields(cls_instance)}
    updates = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown config key %s%s", section, key)
            continue
        updates[key] = value
    return replace(cls_instance, **updates)


def config_from_dict(data: Mapping[str, Any]) -> ImageToolsConfig:
    data = dict(data or {})
    limits = _merge(SizeLimits(), data.pop("size_limits", None) or {}, "size_limits.")
    delivery_raw = dict(data.pop("delivery", None) or {})
    if "overflow_send_type" in delivery_raw:
        delivery_raw["overflow_send_type"] = SendType(delivery_raw["overflow_send_type"])
    if "zip_file_type" in delivery_raw:
        delivery_raw["zip_file_type"] = ZipType(delivery_raw["zip_file_type"])
    delivery = _merge(DeliveryConfig(), delivery_raw, "delivery.")
    base = ImageToolsConfig(size_limits=limits, delivery=delivery)
    return _merge(base, data, "")


def load_config(path: Path | str | None = None) -> ImageToolsConfig:
    """Load configuration from *path*, the environment, or defaults."""
    if path is None:
        env = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env) if env else None
    if path is None:
        return ImageToolsConfig()
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level.")
    logger.info("Loaded configuration from %s", path)
    return config_from_dict(data)


def resolve_archiver(name: str = "7z") -> Path:
    """Find the archiver binary on $PATH."""
    path = shutil.which(name)
    if path is None:
        logger.warning("%s not found, packing outputs into a file will fail", name)
        raise ZipFailed()
    return Path(path)
