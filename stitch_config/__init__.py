"""
stitch_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``EngineConfig``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Validation: a configuration with any validation error is rejected.
    - Deterministic checksum: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- validation failed.

Every successful call emits a ``STITCH_CONFIG_TRACE`` log entry with the
config id, version and checksum.
"""

from __future__ import annotations

from pathlib import Path

from stitch_config.bridges import cascade_parameters
from stitch_config.loader import load_engine_config
from stitch_config.schema import EngineConfig, GazanaHeads, RateCascadeConfig
from stitch_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    config_dir: Path | None = None, config_name: str = "default"
) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to stitch_config/sets/.
        config_name: File stem of the set to load.

    Raises:
        FileNotFoundError: If the configuration file is missing.
        ValueError: If validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = Path(sets_dir) / f"{config_name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    config = load_engine_config(path)

    errors = config.validate()
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    _logger.info(
        "STITCH_CONFIG_TRACE",
        extra={
            "trace_type": "STITCH_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "gazana_count": len(config.gazana_heads.entries),
            "preserve_rate_per_repeat_override": (
                config.rate_cascade.preserve_rate_per_repeat_override
            ),
        },
    )
    return config


__all__ = [
    "get_active_config",
    "cascade_parameters",
    "EngineConfig",
    "GazanaHeads",
    "RateCascadeConfig",
]
