"""
Lancer Downtime Tracker - Main Entry Point

Command line access to the roll-resolution engine and the downtime action
catalogue. Rolls pilot checks and dice pools (with conditional modifiers)
and lists the actions available in a downtime phase.
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from lancer_downtime.data_models import DiceRoller, DowntimePhase, InvalidCheckError
from lancer_downtime.downtime.actions import (
    ActionCatalogue,
    DEFAULT_ACTIVE_SETS,
    filter_actions_by_phase,
    group_actions_by_category,
)
from lancer_downtime.observability.run_log import get_run_log
from lancer_downtime.rolls.check_executor import CheckExecutor, CheckSpecification
from lancer_downtime.rolls.conditional_ledger import ConditionalLedger
from lancer_downtime.rolls.presentation import render_check_result
from lancer_downtime.storage.settings_store import SettingsStore


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class TrackerConfig:
    """Configuration for a tracker session."""

    data_dir: Path = field(default_factory=lambda: Path("data"))
    settings_file: str = "downtime_settings.json"
    seed: Optional[int] = None
    active_sets: list[str] = field(default_factory=lambda: list(DEFAULT_ACTIVE_SETS))
    show_run_log: bool = False
    verbose: bool = False

    def __post_init__(self):
        """Ensure paths are Path objects."""
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)

    @property
    def settings_path(self) -> Path:
        return self.data_dir / self.settings_file


def create_store(config: TrackerConfig) -> SettingsStore:
    """Open the settings store, loading saved settings when present."""
    store = SettingsStore(config.settings_path)
    if config.settings_path.exists():
        store.load()
    return store


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def _add_conditional_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c", "--conditional",
        action="append",
        default=[],
        metavar="MAGNITUDE:JUSTIFICATION",
        help="Conditional modifier awaiting referee approval (repeatable)",
    )


def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Lancer Downtime Tracker - downtime checks for LANCER and Far Field",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m lancer_downtime.main roll pilot --accuracy 2 -c "1:Old contact"
  python -m lancer_downtime.main roll pool --pool 3 -c "2:Borrowed tools"
  python -m lancer_downtime.main actions --phase shore-leave
        """
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path("data"),
        help="Directory for tracker settings (default: data)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed the dice for a reproducible session",
    )
    parser.add_argument(
        "--show-run-log",
        action="store_true",
        help="Print the run log after the command",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    roll_parser = subparsers.add_parser("roll", help="Roll a downtime check")
    roll_kinds = roll_parser.add_subparsers(dest="kind", required=True)

    pilot_parser = roll_kinds.add_parser("pilot", help="LANCER pilot check (1d20 + accuracy)")
    pilot_parser.add_argument("--accuracy", type=int, default=0, help="Accuracy dice (default: 0)")
    pilot_parser.add_argument("--difficulty", type=int, default=0, help="Difficulty dice (default: 0)")
    pilot_parser.add_argument("--reason", type=str, default="", help="Reason for the accuracy")
    _add_conditional_argument(pilot_parser)

    pool_parser = roll_kinds.add_parser("pool", help="Far Field dice pool (Xd6, 5+ succeeds)")
    pool_parser.add_argument("--pool", type=int, default=2, help="Base pool size (default: 2)")
    pool_parser.add_argument("--bonus", type=int, default=0, help="Confirmed bonus dice (default: 0)")
    pool_parser.add_argument("--reason", type=str, default="", help="Reason for the bonus dice")
    _add_conditional_argument(pool_parser)

    actions_parser = subparsers.add_parser("actions", help="List downtime actions")
    actions_parser.add_argument(
        "--phase",
        type=str,
        choices=[p.value for p in DowntimePhase],
        help="Only actions available in this phase",
    )
    actions_parser.add_argument(
        "--set",
        dest="action_sets",
        action="append",
        help="Action set id to list (repeatable, default: active sets)",
    )

    return parser.parse_args(argv)


def create_config_from_args(args: argparse.Namespace) -> TrackerConfig:
    """Create TrackerConfig from parsed arguments."""
    config = TrackerConfig(
        data_dir=args.data_dir,
        seed=args.seed,
        show_run_log=args.show_run_log,
        verbose=args.verbose,
    )
    if getattr(args, "action_sets", None):
        config.active_sets = list(args.action_sets)
    return config


def parse_conditionals(values: list[str]) -> ConditionalLedger:
    """
    Build a ledger from MAGNITUDE:JUSTIFICATION strings.

    Raises:
        InvalidCheckError: A value is malformed or fails ledger validation
    """
    ledger = ConditionalLedger()
    for value in values:
        magnitude, sep, justification = value.partition(":")
        if not sep:
            raise InvalidCheckError(f"Conditional '{value}' must look like MAGNITUDE:JUSTIFICATION")
        try:
            amount = int(magnitude)
        except ValueError:
            raise InvalidCheckError(f"Conditional magnitude '{magnitude}' is not a number") from None
        ledger.propose(amount, justification)
    return ledger


# =============================================================================
# COMMANDS
# =============================================================================

def run_roll(args: argparse.Namespace) -> str:
    ledger = parse_conditionals(args.conditional)
    if args.kind == "pilot":
        spec = CheckSpecification.pilot_check(
            accuracy=args.accuracy,
            difficulty=args.difficulty,
            conditionals=ledger.snapshot(),
            reason=args.reason,
        )
    else:
        spec = CheckSpecification.dice_pool(
            pool_size=args.pool,
            bonus_dice=args.bonus,
            conditionals=ledger.snapshot(),
            reason=args.reason,
        )
    result = CheckExecutor().execute(spec)
    return render_check_result(result)


def run_actions(config: TrackerConfig, phase: Optional[str]) -> str:
    catalogue = ActionCatalogue(create_store(config))
    actions = filter_actions_by_phase(
        catalogue.get_actions(config.active_sets),
        DowntimePhase(phase) if phase else None,
    )

    lines = []
    for category, grouped in group_actions_by_category(actions).items():
        lines.append(category.upper())
        for action in grouped:
            roll = " [roll]" if action.requires_roll else ""
            lines.append(f"  {action.action_id:<22} {action.name} ({action.action_set_name}){roll}")
    return "\n".join(lines) if lines else "No actions available"


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI usage."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    config = create_config_from_args(args)

    if config.seed is not None:
        DiceRoller.set_seed(config.seed)

    try:
        if args.command == "roll":
            print(run_roll(args))
        else:
            print(run_actions(config, args.phase))
    except InvalidCheckError as e:
        print(f"Invalid check: {e}", file=sys.stderr)
        return 2

    if config.show_run_log:
        print()
        print(get_run_log().format_log())
    return 0


if __name__ == "__main__":
    sys.exit(main())
