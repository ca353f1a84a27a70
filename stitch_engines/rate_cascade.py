"""
stitch_engines.rate_cascade -- Billing rate derivation for a contract item.

Responsibility:
    Derive every cached rate/amount field of a contract item from its raw
    inputs (stitches per repeat, rate per stitch, gazana, repeats, pieces,
    motif and lace lines).

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Parameters come from
    ``stitch_config`` through ``stitch_config.bridges.cascade_parameters``.

Invariants enforced:
    - Pure and idempotent: the same inputs, previous state and parameters
      always produce the same ``CascadeResult``.
    - A step whose inputs are absent keeps the previous value of its field
      (status RETAINED).  Nothing is coerced to zero and nothing raises.
    - Downstream steps read the current value of the upstream field,
      whether it was computed now or retained.
    - A manual rate_per_repeat override survives until stitch_per_repeat,
      rate_per_stitch or cost_factor changes; then it is recomputed and a
      RATE_OVERRIDE_DISCARDED warning is returned (unless the parameters
      ask to preserve overrides).

Steps:
    1. calculated_rate  = round4(S x Rs / divisor x yard_factor)
    2. rate_per_repeat  = round4(calculated_rate x G)        (overridable)
    3. total_rate       = round4(R x rate_per_repeat)
    4. heads            = gazana table lookup of G (0 if unmapped/absent)
    5. rate_per_piece   = round4(rate_per_repeat / heads)    (heads > 0)
    6. piece_amount     = round4(rate_per_piece x P)
    7. motif_amount     = round4(motif_rate x motif_qty)
       lace_amount      = round4(lace_rate x lace_qty)
    8. final_total_rate = round_half_up(total_rate + piece_amount)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Self

from stitch_engines.tracer import traced_engine
from stitch_kernel.domain.parsing import parse_decimal
from stitch_kernel.domain.results import ConsistencyWarning, WarningCode
from stitch_kernel.domain.values import round_places, round_whole

DEFAULT_HEADS_TABLE: tuple[tuple[Decimal, int], ...] = (
    (Decimal("4.50"), 8),
    (Decimal("6.75"), 12),
    (Decimal("10.11"), 18),
    (Decimal("13.50"), 24),
    (Decimal("15.17"), 27),
)


class FieldStatus(str, Enum):
    COMPUTED = "computed"
    RETAINED = "retained"
    OVERRIDDEN = "overridden"


@dataclass(frozen=True)
class DerivedField:
    """One derived value plus how it was obtained this run."""

    name: str
    value: Decimal | None
    status: FieldStatus
    missing_inputs: tuple[str, ...] = ()

    @property
    def is_available(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class CascadeParameters:
    stitch_divisor: Decimal = Decimal("1000")
    yard_factor: Decimal = Decimal("2.77")
    rate_places: int = 4
    heads_table: tuple[tuple[Decimal, int], ...] = DEFAULT_HEADS_TABLE
    heads_epsilon: Decimal = Decimal("0.001")
    preserve_rate_per_repeat_override: bool = False


@dataclass(frozen=True)
class RateInputs:
    """Declared inputs of the cascade.  ``None`` means absent."""

    stitch_per_repeat: Decimal | None = None
    rate_per_stitch: Decimal | None = None
    cost_factor: Decimal | None = None
    repeat_count: Decimal | None = None
    piece_count: Decimal | None = None
    motif_rate: Decimal | None = None
    motif_qty: Decimal | None = None
    lace_rate: Decimal | None = None
    lace_qty: Decimal | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, object]) -> Self:
        """Build from presentation-layer values (strings, numbers or None).

        Unknown keys are ignored; unparseable values become absent.
        """
        return cls(**{f.name: parse_decimal(raw.get(f.name)) for f in fields(cls)})

    def rate_basis(self) -> tuple[Decimal | None, Decimal | None, Decimal | None]:
        """The inputs whose change invalidates a rate_per_repeat override."""
        return (self.stitch_per_repeat, self.rate_per_stitch, self.cost_factor)


@dataclass(frozen=True)
class CascadeState:
    """What the cascade produced last time, as persisted on the item."""

    inputs: RateInputs
    values: Mapping[str, Decimal | None] = field(default_factory=dict)
    rate_per_repeat_overridden: bool = False


@dataclass(frozen=True)
class DerivedRates:
    calculated_rate: DerivedField
    rate_per_repeat: DerivedField
    total_rate: DerivedField
    heads: DerivedField
    rate_per_piece: DerivedField
    piece_amount: DerivedField
    motif_amount: DerivedField
    lace_amount: DerivedField
    final_total_rate: DerivedField

    def all_fields(self) -> tuple[DerivedField, ...]:
        return tuple(getattr(self, f.name) for f in fields(self))

    def values(self) -> dict[str, Decimal | None]:
        return {f.name: f.value for f in self.all_fields()}

    @property
    def head_count(self) -> int:
        return int(self.heads.value or 0)


@dataclass(frozen=True)
class CascadeResult:
    rates: DerivedRates
    rate_per_repeat_overridden: bool
    warnings: tuple[ConsistencyWarning, ...] = ()


def heads_for_cost_factor(
    cost_factor: Decimal | None,
    table: tuple[tuple[Decimal, int], ...] = DEFAULT_HEADS_TABLE,
    epsilon: Decimal = Decimal("0.001"),
) -> int:
    """Head count for a gazana value; 0 when absent or not in the table."""
    if cost_factor is None:
        return 0
    for gazana, heads in table:
        if abs(cost_factor - gazana) < epsilon:
            return heads
    return 0


def _missing(**named: Decimal | None) -> tuple[str, ...]:
    return tuple(name for name, value in named.items() if value is None)


class _Cascade:
    """One run of the cascade.  Holds the previous values for retention."""

    def __init__(self, params: CascadeParameters, previous: CascadeState | None):
        self.params = params
        self.previous_values = dict(previous.values) if previous else {}

    def round(self, value: Decimal) -> Decimal:
        return round_places(value, self.params.rate_places)

    def computed(self, name: str, value: Decimal) -> DerivedField:
        return DerivedField(name, value, FieldStatus.COMPUTED)

    def retained(self, name: str, missing: tuple[str, ...]) -> DerivedField:
        return DerivedField(
            name, self.previous_values.get(name), FieldStatus.RETAINED, missing
        )

    def product(
        self, name: str, left: tuple[str, Decimal | None], right: tuple[str, Decimal | None]
    ) -> DerivedField:
        missing = _missing(**{left[0]: left[1], right[0]: right[1]})
        if missing:
            return self.retained(name, missing)
        return self.computed(name, self.round(left[1] * right[1]))


@traced_engine(
    "rate_cascade", "1.0", fingerprint_fields=("inputs", "previous", "override")
)
def compute_rates(
    inputs: RateInputs,
    previous: CascadeState | None = None,
    override: Decimal | None = None,
    params: CascadeParameters | None = None,
) -> CascadeResult:
    """Run the full cascade.

    Args:
        inputs: Current declared inputs.
        previous: Last persisted state (inputs, derived values, override
            flag).  None for a new item.
        override: A rate_per_repeat typed by the operator in this edit.
        params: Formula constants and the gazana table.
    """
    params = params or CascadeParameters()
    run = _Cascade(params, previous)
    warnings: list[ConsistencyWarning] = []

    s, rs, g = inputs.rate_basis()

    # 1
    missing = _missing(stitch_per_repeat=s, rate_per_stitch=rs)
    if missing:
        calculated = run.retained("calculated_rate", missing)
    else:
        calculated = run.computed(
            "calculated_rate",
            run.round(s * rs / params.stitch_divisor * params.yard_factor),
        )

    # 2
    overridden = False
    # Absent inputs are not a change; they only suppress recomputation
    basis_changed = previous is not None and any(
        new is not None and new != old
        for new, old in zip((s, rs, g), previous.inputs.rate_basis())
    )
    if override is not None:
        per_repeat = DerivedField(
            "rate_per_repeat", run.round(override), FieldStatus.OVERRIDDEN
        )
        overridden = True
    elif (
        previous is not None
        and previous.rate_per_repeat_overridden
        and (not basis_changed or params.preserve_rate_per_repeat_override)
    ):
        per_repeat = DerivedField(
            "rate_per_repeat",
            previous.values.get("rate_per_repeat"),
            FieldStatus.OVERRIDDEN,
        )
        overridden = True
    else:
        if previous is not None and previous.rate_per_repeat_overridden:
            warnings.append(
                ConsistencyWarning(
                    code=WarningCode.RATE_OVERRIDE_DISCARDED,
                    message=(
                        "Manual rate per repeat was replaced because stitches, "
                        "rate per stitch or gazana changed"
                    ),
                    details={
                        "discarded_rate_per_repeat": previous.values.get(
                            "rate_per_repeat"
                        ),
                    },
                )
            )
        per_repeat = run.product(
            "rate_per_repeat",
            ("calculated_rate", calculated.value),
            ("cost_factor", g),
        )

    # 3
    total = run.product(
        "total_rate",
        ("repeat_count", inputs.repeat_count),
        ("rate_per_repeat", per_repeat.value),
    )

    # 4
    head_count = heads_for_cost_factor(g, params.heads_table, params.heads_epsilon)
    heads = run.computed("heads", Decimal(head_count))

    # 5
    if head_count > 0 and per_repeat.value is not None:
        per_piece = run.computed(
            "rate_per_piece", run.round(per_repeat.value / head_count)
        )
    else:
        per_piece = run.retained(
            "rate_per_piece",
            _missing(rate_per_repeat=per_repeat.value)
            + (("heads",) if head_count == 0 else ()),
        )

    # 6
    piece_amount = run.product(
        "piece_amount",
        ("rate_per_piece", per_piece.value),
        ("piece_count", inputs.piece_count),
    )

    # 7
    motif_amount = run.product(
        "motif_amount",
        ("motif_rate", inputs.motif_rate),
        ("motif_qty", inputs.motif_qty),
    )
    lace_amount = run.product(
        "lace_amount",
        ("lace_rate", inputs.lace_rate),
        ("lace_qty", inputs.lace_qty),
    )

    # 8
    missing = _missing(total_rate=total.value, piece_amount=piece_amount.value)
    if missing:
        final = run.retained("final_total_rate", missing)
    else:
        final = run.computed(
            "final_total_rate", round_whole(total.value + piece_amount.value)
        )

    return CascadeResult(
        rates=DerivedRates(
            calculated_rate=calculated,
            rate_per_repeat=per_repeat,
            total_rate=total,
            heads=heads,
            rate_per_piece=per_piece,
            piece_amount=piece_amount,
            motif_amount=motif_amount,
            lace_amount=lace_amount,
            final_total_rate=final,
        ),
        rate_per_repeat_overridden=overridden,
        warnings=tuple(warnings),
    )
