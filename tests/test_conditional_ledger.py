"""
Unit tests for the conditional modifier ledger.

Tests ConditionalLedger and ConditionalModifier from
lancer_downtime/rolls/conditional_ledger.py.
"""

import pytest

from lancer_downtime.data_models import ConditionalStatus, InvalidCheckError
from lancer_downtime.rolls.conditional_ledger import (
    ConditionalLedger,
    ConditionalModifier,
    ConditionalValidationError,
)


class TestPropose:
    """Tests for adding conditional modifiers."""

    def test_propose_appends_pending_entry(self):
        ledger = ConditionalLedger()
        entry = ledger.propose(2, "Old squadmate runs the depot")

        assert len(ledger) == 1
        assert entry.magnitude == 2
        assert entry.justification == "Old squadmate runs the depot"
        assert entry.status == ConditionalStatus.PENDING
        assert entry.is_pending
        assert entry.modifier_id.startswith("cond_")

    def test_proposal_order_kept(self):
        ledger = ConditionalLedger()
        first = ledger.propose(1, "Favour owed")
        second = ledger.propose(3, "Stolen manifest")

        assert [e.modifier_id for e in ledger] == [first.modifier_id, second.modifier_id]
        assert ledger.total_magnitude() == 4

    def test_justification_trimmed(self):
        ledger = ConditionalLedger()
        entry = ledger.propose(1, "  Spare parts  ")
        assert entry.justification == "Spare parts"

    def test_zero_magnitude_rejected(self):
        """A zero magnitude raises and leaves the ledger unchanged."""
        ledger = ConditionalLedger()
        with pytest.raises(ConditionalValidationError):
            ledger.propose(0, "reason")
        assert len(ledger) == 0

    def test_blank_justification_rejected(self):
        ledger = ConditionalLedger()
        ledger.propose(1, "Valid")
        with pytest.raises(ConditionalValidationError):
            ledger.propose(3, "")
        with pytest.raises(ConditionalValidationError):
            ledger.propose(3, "   ")
        assert len(ledger) == 1

    @pytest.mark.parametrize("magnitude", [-1, 1.5, "2", True, None])
    def test_non_positive_integer_magnitudes_rejected(self, magnitude):
        ledger = ConditionalLedger()
        with pytest.raises(ConditionalValidationError):
            ledger.propose(magnitude, "reason")
        assert len(ledger) == 0

    def test_validation_error_is_invalid_check(self):
        """Callers can catch one error type for any bad check input."""
        assert issubclass(ConditionalValidationError, InvalidCheckError)


class TestLedgerEditing:
    """Tests for withdrawing entries and recording decisions."""

    def test_withdraw_removes_entry(self):
        ledger = ConditionalLedger()
        keep = ledger.propose(1, "Keep me")
        drop = ledger.propose(2, "Drop me")

        removed = ledger.withdraw(drop.modifier_id)

        assert removed is drop
        assert [e.modifier_id for e in ledger] == [keep.modifier_id]

    def test_withdraw_works_for_any_status(self):
        ledger = ConditionalLedger()
        entry = ledger.propose(1, "Approved then withdrawn")
        ledger.approve(entry.modifier_id)
        ledger.withdraw(entry.modifier_id)
        assert len(ledger) == 0

    def test_withdraw_unknown_raises(self):
        ledger = ConditionalLedger()
        with pytest.raises(KeyError):
            ledger.withdraw("cond_missing")

    def test_approve_and_reject(self):
        ledger = ConditionalLedger()
        a = ledger.propose(1, "A")
        b = ledger.propose(1, "B")

        ledger.approve(a.modifier_id)
        ledger.reject(b.modifier_id)

        assert ledger.find(ConditionalStatus.APPROVED) == [a]
        assert ledger.find(ConditionalStatus.REJECTED) == [b]
        assert ledger.find(ConditionalStatus.PENDING) == []
        assert len(ledger.find()) == 2

    def test_reset_to_pending(self):
        ledger = ConditionalLedger()
        entry = ledger.propose(1, "A")
        ledger.reject(entry.modifier_id)
        ledger.reset(entry.modifier_id)
        assert entry.is_pending

    def test_decision_on_unknown_entry(self):
        with pytest.raises(KeyError):
            ConditionalLedger().approve("cond_missing")

    def test_status_does_not_change_total(self):
        """Decisions are bookkeeping; the total covers every entry."""
        ledger = ConditionalLedger()
        entry = ledger.propose(2, "A")
        ledger.reject(entry.modifier_id)
        assert ledger.total_magnitude() == 2

    def test_clear(self):
        ledger = ConditionalLedger()
        ledger.propose(1, "A")
        ledger.clear()
        assert len(ledger) == 0


class TestSnapshot:
    """Tests for snapshots handed to the check executor."""

    def test_snapshot_is_independent(self):
        ledger = ConditionalLedger()
        entry = ledger.propose(1, "A")

        snapshot = ledger.snapshot()
        ledger.approve(entry.modifier_id)
        ledger.propose(2, "B")

        assert len(snapshot) == 1
        assert snapshot[0].status == ConditionalStatus.PENDING
        assert snapshot[0].modifier_id == entry.modifier_id

    def test_empty_snapshot(self):
        assert ConditionalLedger().snapshot() == []


class TestConditionalModifierSerialization:

    def test_to_dict(self):
        modifier = ConditionalModifier(magnitude=2, justification="Favour", modifier_id="cond_1")
        assert modifier.to_dict() == {
            "modifier_id": "cond_1",
            "magnitude": 2,
            "justification": "Favour",
            "status": "pending",
        }

    def test_from_dict_restores_status(self):
        modifier = ConditionalModifier.from_dict(
            {"modifier_id": "cond_2", "magnitude": 1, "justification": "X", "status": "approved"}
        )
        assert modifier.status == ConditionalStatus.APPROVED
        assert not modifier.is_pending
