"""
Conditional modifier ledger.

Players propose conditional bonuses ("my contact owes me a favour: +1")
that the referee may approve or reject after the roll. The ledger only
keeps the proposals in order; the check executor already treats every
entry as approved when it computes the potential result, so a later
decision never requires another roll.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Iterator, Optional
import logging
import uuid

from lancer_downtime.data_models import ConditionalStatus, InvalidCheckError


logger = logging.getLogger(__name__)


class ConditionalValidationError(InvalidCheckError):
    """Raised when a proposed conditional modifier is malformed."""
    pass


@dataclass
class ConditionalModifier:
    """A proposed bonus awaiting a referee decision."""
    magnitude: int
    justification: str
    status: ConditionalStatus = ConditionalStatus.PENDING
    modifier_id: str = field(default_factory=lambda: f"cond_{uuid.uuid4().hex[:8]}")

    @property
    def is_pending(self) -> bool:
        return self.status == ConditionalStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "modifier_id": self.modifier_id,
            "magnitude": self.magnitude,
            "justification": self.justification,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConditionalModifier":
        return cls(
            magnitude=data["magnitude"],
            justification=data["justification"],
            status=ConditionalStatus(data.get("status", ConditionalStatus.PENDING.value)),
            modifier_id=data["modifier_id"],
        )


def validate_conditional(magnitude: Any, justification: Any) -> None:
    """
    Check a conditional modifier's fields.

    Raises:
        ConditionalValidationError: magnitude is not a positive integer or
            the justification is blank
    """
    if isinstance(magnitude, bool) or not isinstance(magnitude, int):
        raise ConditionalValidationError(f"Conditional magnitude must be an integer, got {magnitude!r}")
    if magnitude <= 0:
        raise ConditionalValidationError(f"Conditional magnitude must be positive, got {magnitude}")
    if not isinstance(justification, str) or not justification.strip():
        raise ConditionalValidationError("Conditional modifier needs a justification")


class ConditionalLedger:
    """Ordered, in-memory list of conditional modifiers for one check."""

    def __init__(self):
        self._entries: list[ConditionalModifier] = []

    def propose(self, magnitude: int, justification: str) -> ConditionalModifier:
        """
        Append a new pending conditional modifier.

        Raises:
            ConditionalValidationError: The ledger is left unchanged.
        """
        validate_conditional(magnitude, justification)
        entry = ConditionalModifier(magnitude=magnitude, justification=justification.strip())
        self._entries.append(entry)
        logger.debug(f"Proposed conditional {entry.modifier_id}: +{magnitude} ({entry.justification})")
        return entry

    def withdraw(self, modifier_id: str) -> ConditionalModifier:
        """Remove an entry regardless of its status."""
        entry = self.get(modifier_id)
        self._entries.remove(entry)
        logger.debug(f"Withdrew conditional {modifier_id}")
        return entry

    def get(self, modifier_id: str) -> ConditionalModifier:
        for entry in self._entries:
            if entry.modifier_id == modifier_id:
                return entry
        raise KeyError(modifier_id)

    def set_status(self, modifier_id: str, status: ConditionalStatus) -> ConditionalModifier:
        """Record the referee's decision. Bookkeeping only; nothing is re-rolled."""
        entry = self.get(modifier_id)
        entry.status = ConditionalStatus(status)
        return entry

    def approve(self, modifier_id: str) -> ConditionalModifier:
        return self.set_status(modifier_id, ConditionalStatus.APPROVED)

    def reject(self, modifier_id: str) -> ConditionalModifier:
        return self.set_status(modifier_id, ConditionalStatus.REJECTED)

    def reset(self, modifier_id: str) -> ConditionalModifier:
        """Put a decided entry back to pending."""
        return self.set_status(modifier_id, ConditionalStatus.PENDING)

    def total_magnitude(self) -> int:
        """Sum of every current entry, whatever its status."""
        return sum(entry.magnitude for entry in self._entries)

    def snapshot(self) -> list[ConditionalModifier]:
        """Independent copies of the entries, in proposal order."""
        return [replace(entry) for entry in self._entries]

    def find(self, status: Optional[ConditionalStatus] = None) -> list[ConditionalModifier]:
        if status is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.status == status]

    def clear(self) -> None:
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ConditionalModifier]:
        return iter(list(self._entries))
