"""Roll resolution for downtime checks.

Provides the pilot check and dice pool executors, outcome classification,
the conditional modifier ledger and text rendering of results.
"""

from lancer_downtime.rolls.classifier import (
    SUCCESS_FACE,
    TierInfo,
    classify,
    count_successes,
    tier_info,
)
from lancer_downtime.rolls.conditional_ledger import (
    ConditionalLedger,
    ConditionalModifier,
    ConditionalValidationError,
)
from lancer_downtime.rolls.check_executor import (
    CheckExecutor,
    CheckOutcome,
    CheckResult,
    CheckSpecification,
    execute_check,
)
from lancer_downtime.rolls.presentation import render_check_result, summarize

__all__ = [
    "SUCCESS_FACE",
    "TierInfo",
    "classify",
    "count_successes",
    "tier_info",
    "ConditionalLedger",
    "ConditionalModifier",
    "ConditionalValidationError",
    "CheckExecutor",
    "CheckOutcome",
    "CheckResult",
    "CheckSpecification",
    "execute_check",
    "render_check_result",
    "summarize",
]
