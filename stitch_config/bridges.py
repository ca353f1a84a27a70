"""
Bridges from configuration to engine parameters.

The engines never import ``stitch_config``.  Services translate the active
``EngineConfig`` into engine parameter objects here.
"""

from stitch_config.schema import EngineConfig
from stitch_engines.rate_cascade import CascadeParameters


def cascade_parameters(config: EngineConfig) -> CascadeParameters:
    rc = config.rate_cascade
    return CascadeParameters(
        stitch_divisor=rc.stitch_divisor,
        yard_factor=rc.yard_factor,
        rate_places=rc.rate_places,
        heads_table=config.gazana_heads.as_table(),
        heads_epsilon=config.gazana_heads.epsilon,
        preserve_rate_per_repeat_override=rc.preserve_rate_per_repeat_override,
    )
