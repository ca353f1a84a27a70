"""
Configuration Schema (``stitch_config.schema``).

Responsibility
--------------
Frozen dataclasses for the engine configuration.  Every value the rate
cascade needs (formula constants, rounding, the gazana-to-heads table and
the override policy) lives here; nothing is read from the environment.

Invariants enforced
-------------------
* All dataclasses are ``frozen=True``.
* Rates are ``Decimal``, never float.
* ``validate()`` returns every problem at once instead of failing on the
  first one.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class RateCascadeConfig:
    stitch_divisor: Decimal = Decimal("1000")
    yard_factor: Decimal = Decimal("2.77")
    rate_places: int = 4
    preserve_rate_per_repeat_override: bool = False


@dataclass(frozen=True)
class GazanaHeadsEntry:
    gazana: Decimal
    heads: int


@dataclass(frozen=True)
class GazanaHeads:
    """Closed set of gazana (cost factor) values and their machine head counts."""

    entries: tuple[GazanaHeadsEntry, ...]
    epsilon: Decimal = Decimal("0.001")

    def as_table(self) -> tuple[tuple[Decimal, int], ...]:
        return tuple((e.gazana, e.heads) for e in self.entries)


@dataclass(frozen=True)
class EngineConfig:
    config_id: str
    version: int
    rate_cascade: RateCascadeConfig
    gazana_heads: GazanaHeads
    checksum: str = ""

    def validate(self) -> list[str]:
        errors: list[str] = []
        rc = self.rate_cascade
        if rc.stitch_divisor <= 0:
            errors.append(f"rate_cascade.stitch_divisor must be > 0, got {rc.stitch_divisor}")
        if rc.yard_factor <= 0:
            errors.append(f"rate_cascade.yard_factor must be > 0, got {rc.yard_factor}")
        if rc.rate_places < 0:
            errors.append(f"rate_cascade.rate_places must be >= 0, got {rc.rate_places}")

        gh = self.gazana_heads
        if gh.epsilon < 0:
            errors.append(f"gazana_heads.epsilon must be >= 0, got {gh.epsilon}")
        seen: set[Decimal] = set()
        for entry in gh.entries:
            if entry.gazana <= 0:
                errors.append(f"gazana {entry.gazana} must be > 0")
            if entry.heads <= 0:
                errors.append(f"heads for gazana {entry.gazana} must be > 0, got {entry.heads}")
            if entry.gazana in seen:
                errors.append(f"gazana {entry.gazana} listed more than once")
            seen.add(entry.gazana)
        return errors
