"""
Check execution for downtime actions.

Two kinds of check are supported:

1. Pilot check (LANCER Core): 1d20, plus or minus the highest of a pool of
   d6 sized by net accuracy (accuracy - difficulty).
2. Dice pool (Far Field): Xd6, counting faces of 5 or 6 as successes.

Each check produces a confirmed result, using only the modifiers already
granted, and, when conditional modifiers were proposed, a potential result
showing what would happen if the referee approved all of them.

Both results come from one set of dice. The modifier or pool batch is
drawn once at the larger of the two sizes; the confirmed result reads a
prefix of that batch and the potential result reads all of it. Approving a
conditional later therefore never needs a second roll, and the confirmed
dice are always the first dice of the potential ones.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional
import logging

from lancer_downtime.data_models import (
    CheckKind,
    DiceRoller,
    DrawSource,
    DrawSourceError,
    InvalidCheckError,
    OutcomeTier,
)
from lancer_downtime.observability.run_log import get_run_log
from lancer_downtime.rolls.classifier import classify, count_successes, tier_info
from lancer_downtime.rolls.conditional_ledger import ConditionalModifier, validate_conditional


logger = logging.getLogger(__name__)


PRIMARY_DIE = 20
MODIFIER_DIE = 6


# =============================================================================
# SPECIFICATION
# =============================================================================


@dataclass
class CheckSpecification:
    """
    Everything needed to execute one check.

    For a pilot check the primary modifier is accuracy - difficulty; for a
    dice pool it is pool_size + bonus_dice. Conditionals keep their
    proposal order. A specification is executed at most once.
    """

    kind: CheckKind
    accuracy: int = 0
    difficulty: int = 0
    pool_size: int = 0
    bonus_dice: int = 0
    conditionals: list[ConditionalModifier] = field(default_factory=list)
    reason: str = ""
    executed: bool = field(default=False, init=False, repr=False, compare=False)

    @classmethod
    def pilot_check(
        cls,
        accuracy: int = 0,
        difficulty: int = 0,
        conditionals: Iterable[ConditionalModifier] = (),
        reason: str = "",
    ) -> "CheckSpecification":
        return cls(
            kind=CheckKind.THRESHOLD_ROLL,
            accuracy=accuracy,
            difficulty=difficulty,
            conditionals=list(conditionals),
            reason=reason,
        )

    @classmethod
    def dice_pool(
        cls,
        pool_size: int = 2,
        bonus_dice: int = 0,
        conditionals: Iterable[ConditionalModifier] = (),
        reason: str = "",
    ) -> "CheckSpecification":
        return cls(
            kind=CheckKind.SUCCESS_POOL,
            pool_size=pool_size,
            bonus_dice=bonus_dice,
            conditionals=list(conditionals),
            reason=reason,
        )

    @property
    def net_modifier(self) -> int:
        """Net accuracy for a pilot check (negative means difficulty dominates)."""
        return self.accuracy - self.difficulty

    @property
    def confirmed_pool(self) -> int:
        """Dice-pool size before any conditional dice."""
        return self.pool_size + self.bonus_dice

    @property
    def conditional_total(self) -> int:
        return sum(c.magnitude for c in self.conditionals)


def validate_specification(spec: CheckSpecification) -> list[ConditionalModifier]:
    """
    Validate a specification before any dice are drawn.

    Returns:
        Snapshots of the specification's conditionals, in order

    Raises:
        InvalidCheckError: The specification cannot be executed
    """
    if not isinstance(spec, CheckSpecification):
        raise InvalidCheckError(f"Expected a CheckSpecification, got {type(spec).__name__}")
    if spec.executed:
        raise InvalidCheckError("This check specification has already been executed")

    try:
        spec.kind = CheckKind(spec.kind)
    except ValueError:
        raise InvalidCheckError(f"Unknown check kind: {spec.kind!r}") from None

    for name in ("accuracy", "difficulty", "pool_size", "bonus_dice"):
        value = getattr(spec, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidCheckError(f"{name} must be an integer, got {value!r}")
        if value < 0:
            raise InvalidCheckError(f"{name} cannot be negative, got {value}")

    snapshots = []
    for conditional in spec.conditionals:
        if not isinstance(conditional, ConditionalModifier):
            raise InvalidCheckError(f"Malformed conditional modifier: {conditional!r}")
        validate_conditional(conditional.magnitude, conditional.justification)
        snapshots.append(replace(conditional))
    return snapshots


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class CheckOutcome:
    """One side (confirmed or potential) of a check result."""

    formula: str
    dice: tuple[int, ...]
    total: int  # Check total, or success count for a dice pool
    tier: OutcomeTier

    # Pilot check only
    net_modifier: Optional[int] = None
    modifier_value: Optional[int] = None

    # Dice pool only
    pool_size: Optional[int] = None
    conditional_dice: tuple[int, ...] = ()

    @property
    def success(self) -> bool:
        return self.tier.is_success

    @property
    def label(self) -> str:
        return tier_info(self.tier).label

    def to_dict(self) -> dict[str, Any]:
        return {
            "formula": self.formula,
            "dice": list(self.dice),
            "total": self.total,
            "tier": self.tier.value,
            "label": self.label,
            "net_modifier": self.net_modifier,
            "modifier_value": self.modifier_value,
            "pool_size": self.pool_size,
            "conditional_dice": list(self.conditional_dice),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CheckOutcome":
        return cls(
            formula=data["formula"],
            dice=tuple(data.get("dice", [])),
            total=data["total"],
            tier=OutcomeTier(data["tier"]),
            net_modifier=data.get("net_modifier"),
            modifier_value=data.get("modifier_value"),
            pool_size=data.get("pool_size"),
            conditional_dice=tuple(data.get("conditional_dice", [])),
        )


@dataclass(frozen=True)
class CheckResult:
    """
    Immutable result of an executed check.

    `potential` is present exactly when conditionals were proposed, and
    `conditionals` holds snapshots taken at execution time.
    """

    kind: CheckKind
    confirmed: CheckOutcome
    potential: Optional[CheckOutcome] = None
    primary_draw: Optional[int] = None
    conditionals: tuple[ConditionalModifier, ...] = ()
    reason: str = ""
    accuracy: int = 0
    difficulty: int = 0

    @property
    def tier(self) -> OutcomeTier:
        return self.confirmed.tier

    @property
    def success(self) -> bool:
        return self.confirmed.success

    @property
    def has_conditionals(self) -> bool:
        return self.potential is not None

    @property
    def would_change(self) -> bool:
        """Whether approving every conditional would change the outcome tier."""
        return self.potential is not None and self.potential.tier != self.confirmed.tier

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "primary_draw": self.primary_draw,
            "reason": self.reason,
            "accuracy": self.accuracy,
            "difficulty": self.difficulty,
            "confirmed": self.confirmed.to_dict(),
            "potential": self.potential.to_dict() if self.potential else None,
            "conditionals": [c.to_dict() for c in self.conditionals],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CheckResult":
        potential = data.get("potential")
        return cls(
            kind=CheckKind(data["kind"]),
            confirmed=CheckOutcome.from_dict(data["confirmed"]),
            potential=CheckOutcome.from_dict(potential) if potential else None,
            primary_draw=data.get("primary_draw"),
            conditionals=tuple(ConditionalModifier.from_dict(c) for c in data.get("conditionals", [])),
            reason=data.get("reason", ""),
            accuracy=data.get("accuracy", 0),
            difficulty=data.get("difficulty", 0),
        )


# =============================================================================
# EXECUTOR
# =============================================================================


def pilot_check_formula(net_modifier: int) -> str:
    """Display formula for a pilot check, e.g. '1d20 + 2d6kh1'."""
    if net_modifier == 0:
        return f"1d{PRIMARY_DIE}"
    sign = "+" if net_modifier > 0 else "-"
    return f"1d{PRIMARY_DIE} {sign} {abs(net_modifier)}d{MODIFIER_DIE}kh1"


def dice_pool_formula(pool_size: int) -> str:
    return f"{pool_size}d{MODIFIER_DIE}"


def _roll_reason(prefix: str, spec: CheckSpecification) -> str:
    return f"{prefix}: {spec.reason}" if spec.reason else prefix


def kept_modifier(dice: list[int], net_modifier: int) -> int:
    """
    Highest die of the pool, added for accuracy or subtracted for difficulty.

    Zero net modifier (or no dice) contributes nothing.
    """
    if net_modifier == 0 or not dice:
        return 0
    highest = max(dice)
    return highest if net_modifier > 0 else -highest


class CheckExecutor:
    """
    Executes check specifications against a draw source.

    The draw source defaults to the shared DiceRoller; tests and replays
    pass a ReplayDrawSource instead.
    """

    def __init__(self, draw_source: Optional[DrawSource] = None):
        self.dice = draw_source if draw_source is not None else DiceRoller()

    def execute(self, spec: CheckSpecification) -> CheckResult:
        """
        Execute a check.

        Raises:
            InvalidCheckError: Before any draw, if the specification is invalid
            DrawSourceError: If the draw source returns a malformed batch
        """
        conditionals = validate_specification(spec)
        spec.executed = True

        if spec.kind == CheckKind.THRESHOLD_ROLL:
            result = self._execute_pilot_check(spec, conditionals)
        else:
            result = self._execute_dice_pool(spec, conditionals)

        self._log_result(result)
        return result

    def _draw(self, sides: int, count: int, reason: str) -> list[int]:
        """Draw one batch; an empty batch never touches the draw source."""
        if count == 0:
            return []
        rolls = list(self.dice.draw(sides, count, reason).rolls)
        if len(rolls) != count:
            raise DrawSourceError(f"Asked for {count}d{sides}, draw source returned {len(rolls)} dice")
        return rolls

    def _execute_pilot_check(
        self,
        spec: CheckSpecification,
        conditionals: list[ConditionalModifier],
    ) -> CheckResult:
        net_confirmed = spec.net_modifier
        net_potential = net_confirmed + sum(c.magnitude for c in conditionals)

        primary = self._draw(PRIMARY_DIE, 1, _roll_reason("Pilot check", spec))[0]

        batch_size = max(abs(net_confirmed), abs(net_potential))
        batch = self._draw(MODIFIER_DIE, batch_size, "Pilot check accuracy/difficulty dice")

        confirmed_dice = batch[:abs(net_confirmed)]
        confirmed_modifier = kept_modifier(confirmed_dice, net_confirmed)
        confirmed_total = primary + confirmed_modifier
        confirmed = CheckOutcome(
            formula=pilot_check_formula(net_confirmed),
            dice=tuple(confirmed_dice),
            total=confirmed_total,
            tier=classify(CheckKind.THRESHOLD_ROLL, confirmed_total),
            net_modifier=net_confirmed,
            modifier_value=confirmed_modifier,
        )

        potential = None
        if conditionals:
            potential_modifier = kept_modifier(batch, net_potential)
            potential_total = primary + potential_modifier
            potential = CheckOutcome(
                formula=pilot_check_formula(net_potential),
                dice=tuple(batch),
                total=potential_total,
                tier=classify(CheckKind.THRESHOLD_ROLL, potential_total),
                net_modifier=net_potential,
                modifier_value=potential_modifier,
            )

        return CheckResult(
            kind=CheckKind.THRESHOLD_ROLL,
            confirmed=confirmed,
            potential=potential,
            primary_draw=primary,
            conditionals=tuple(conditionals),
            reason=spec.reason,
            accuracy=spec.accuracy,
            difficulty=spec.difficulty,
        )

    def _execute_dice_pool(
        self,
        spec: CheckSpecification,
        conditionals: list[ConditionalModifier],
    ) -> CheckResult:
        confirmed_size = spec.confirmed_pool
        potential_size = confirmed_size + sum(c.magnitude for c in conditionals)

        batch = self._draw(MODIFIER_DIE, potential_size, _roll_reason("Dice pool", spec))

        confirmed_dice = batch[:confirmed_size]
        confirmed_successes = count_successes(confirmed_dice)
        confirmed = CheckOutcome(
            formula=dice_pool_formula(confirmed_size),
            dice=tuple(confirmed_dice),
            total=confirmed_successes,
            tier=classify(CheckKind.SUCCESS_POOL, confirmed_successes),
            pool_size=confirmed_size,
        )

        potential = None
        if conditionals:
            potential_successes = count_successes(batch)
            potential = CheckOutcome(
                formula=dice_pool_formula(potential_size),
                dice=tuple(batch),
                total=potential_successes,
                tier=classify(CheckKind.SUCCESS_POOL, potential_successes),
                pool_size=potential_size,
                conditional_dice=tuple(batch[confirmed_size:]),
            )

        return CheckResult(
            kind=CheckKind.SUCCESS_POOL,
            confirmed=confirmed,
            potential=potential,
            conditionals=tuple(conditionals),
            reason=spec.reason,
        )

    def _log_result(self, result: CheckResult) -> None:
        potential = result.potential
        get_run_log().log_check(
            kind=result.kind.value,
            formula=result.confirmed.formula,
            total=result.confirmed.total,
            outcome=result.confirmed.tier.value,
            potential_formula=potential.formula if potential else None,
            potential_total=potential.total if potential else None,
            potential_outcome=potential.tier.value if potential else None,
            context={"reason": result.reason, "conditionals": len(result.conditionals)},
        )
        logger.info(
            f"{result.kind.value} {result.confirmed.formula}: {result.confirmed.total} "
            f"-> {result.confirmed.tier.value}"
            + (f" (potential {potential.total} -> {potential.tier.value})" if potential else "")
        )


def execute_check(spec: CheckSpecification, draw_source: Optional[DrawSource] = None) -> CheckResult:
    """Execute a single check with a throwaway executor."""
    return CheckExecutor(draw_source).execute(spec)
