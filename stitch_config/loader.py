"""
Configuration Loader (``stitch_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``stitch_config.schema`` dataclasses.  Runtime callers go through
``stitch_config.get_active_config()``, not this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Non-numeric values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from stitch_config.schema import (
    EngineConfig,
    GazanaHeads,
    GazanaHeadsEntry,
    RateCascadeConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def _decimal(value: Any, where: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{where}: not a number: {value!r}") from exc


def parse_rate_cascade(data: dict[str, Any]) -> RateCascadeConfig:
    defaults = RateCascadeConfig()
    return RateCascadeConfig(
        stitch_divisor=_decimal(
            data.get("stitch_divisor", defaults.stitch_divisor),
            "rate_cascade.stitch_divisor",
        ),
        yard_factor=_decimal(
            data.get("yard_factor", defaults.yard_factor), "rate_cascade.yard_factor"
        ),
        rate_places=int(data.get("rate_places", defaults.rate_places)),
        preserve_rate_per_repeat_override=bool(
            data.get(
                "preserve_rate_per_repeat_override",
                defaults.preserve_rate_per_repeat_override,
            )
        ),
    )


def parse_gazana_heads(data: dict[str, Any]) -> GazanaHeads:
    entries = tuple(
        GazanaHeadsEntry(
            gazana=_decimal(row["gazana"], "gazana_heads.table.gazana"),
            heads=int(row["heads"]),
        )
        for row in data["table"]
    )
    return GazanaHeads(
        entries=entries,
        epsilon=_decimal(data.get("epsilon", "0.001"), "gazana_heads.epsilon"),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed YAML content."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def load_engine_config(path: Path) -> EngineConfig:
    data = load_yaml_file(path)
    return EngineConfig(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        rate_cascade=parse_rate_cascade(data.get("rate_cascade") or {}),
        gazana_heads=parse_gazana_heads(data["gazana_heads"]),
        checksum=compute_checksum(data),
    )
