"""
Plain-text rendering of check results for chat and log sinks.

Everything shown here is read straight off the CheckResult; nothing is
re-derived from the dice.
"""

from typing import Optional

from lancer_downtime.data_models import CheckKind
from lancer_downtime.rolls.check_executor import CheckOutcome, CheckResult
from lancer_downtime.rolls.classifier import tier_info


def _format_dice(dice: tuple[int, ...]) -> str:
    return "[" + ", ".join(str(d) for d in dice) + "]" if dice else "[]"


def _outcome_line(kind: CheckKind, outcome: CheckOutcome, primary_draw: Optional[int]) -> str:
    label = tier_info(outcome.tier).label.upper()
    if kind == CheckKind.THRESHOLD_ROLL:
        if outcome.dice:
            return (
                f"{outcome.formula}: d20 {primary_draw}, d6 {_format_dice(outcome.dice)} "
                f"({outcome.modifier_value:+d}) = {outcome.total} {label}"
            )
        return f"{outcome.formula}: d20 {primary_draw} = {outcome.total} {label}"

    noun = "success" if outcome.total == 1 else "successes"
    return f"{outcome.formula}: {_format_dice(outcome.dice)} = {outcome.total} {noun} {label}"


def summarize(result: CheckResult) -> str:
    """One-line summary, e.g. '1d20 + 2d6kh1 = 21 (Triumph)'."""
    line = f"{result.confirmed.formula} = {result.confirmed.total} ({result.confirmed.label})"
    if result.potential is not None:
        line += f"; if approved: {result.potential.total} ({result.potential.label})"
    return line


def render_check_result(result: CheckResult, action_name: Optional[str] = None) -> str:
    """
    Render a check result as multi-line text.

    Args:
        result: The executed check
        action_name: Optional downtime action name for the heading

    Returns:
        Text with the confirmed roll, and the potential roll plus the
        conditionals it depends on when any were proposed
    """
    heading = "Pilot Check" if result.kind == CheckKind.THRESHOLD_ROLL else "Dice Pool"
    lines = [f"Downtime: {action_name} ({heading})" if action_name else heading]
    if result.reason:
        lines.append(f"Reason: {result.reason}")

    lines.append(f"Confirmed: {_outcome_line(result.kind, result.confirmed, result.primary_draw)}")

    if result.potential is not None:
        lines.append(f"If approved: {_outcome_line(result.kind, result.potential, result.primary_draw)}")
        if result.kind == CheckKind.SUCCESS_POOL and result.potential.conditional_dice:
            extra = result.potential.total - result.confirmed.total
            lines.append(
                f"  Conditional dice: {_format_dice(result.potential.conditional_dice)} (+{extra} successes)"
            )
        for conditional in result.conditionals:
            lines.append(
                f"  - +{conditional.magnitude} {conditional.justification} [{conditional.status.value}]"
            )
        if result.would_change:
            lines.append(
                f"Approval would change the outcome: {result.confirmed.label} -> {result.potential.label}"
            )
        else:
            lines.append("Approval would not change the outcome")

    return "\n".join(lines)
