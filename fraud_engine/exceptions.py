"""Exception hierarchy for the fraud decision engine."""

from __future__ import annotations


class FraudEngineError(Exception):
    """Base exception for all engine errors."""


class InvalidStateTransition(FraudEngineError):
    """Raised when a risk entity cannot move to the requested state.

    Attributes:
        risk_id: Entity that rejected the mutation.
        current: Status the entity is in.
        target: Requested status, or ``None`` for score mutations.
    """

    def __init__(self, risk_id: str, current: str, target: str | None = None) -> None:
        self.risk_id = risk_id
        self.current = current
        self.target = target
        if target is None:
            message = f"Risk {risk_id} is {current}; no further mutation allowed"
        else:
            message = f"Risk {risk_id} cannot move from {current} to {target}"
        super().__init__(message)


class ApprovalRequired(InvalidStateTransition):
    """Raised when a high-severity risk leaves ``detected`` without approval."""

    def __init__(self, risk_id: str, current: str, target: str) -> None:
        super().__init__(risk_id, current, target)
        self.args = (
            f"Risk {risk_id} requires an approval record before moving to {target}",
        )


class UnknownFraudType(FraudEngineError, ValueError):
    """Raised when an ROI is requested for an unrecognised fraud type."""

    def __init__(self, fraud_type: str) -> None:
        self.fraud_type = fraud_type
        super().__init__(f"Unknown fraud type: {fraud_type!r}")


class UnknownLineOfBusiness(FraudEngineError, ValueError):
    """Raised when an ROI is requested for an unrecognised line of business."""

    def __init__(self, line_of_business: str) -> None:
        self.line_of_business = line_of_business
        super().__init__(f"Unknown line of business: {line_of_business!r}")


class NotFound(FraudEngineError, KeyError):
    """Raised when a catalog entry or risk entity does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")

    def __str__(self) -> str:
        return str(self.args[0])


class CatalogValidationError(FraudEngineError, ValueError):
    """Raised when a catalog entry violates its structural invariants."""


class ConcurrentModificationError(FraudEngineError):
    """Raised when a risk entity is written from a stale version.

    Attributes:
        risk_id: Entity being written.
        expected: Version the writer started from.
        actual: Version currently stored.
    """

    def __init__(self, risk_id: str, expected: int, actual: int) -> None:
        self.risk_id = risk_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Risk {risk_id} was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )


class DuplicateRisk(FraudEngineError):
    """Raised when a risk entity is opened under an id already in use."""

    def __init__(self, risk_id: str) -> None:
        self.risk_id = risk_id
        super().__init__(f"Risk {risk_id} already exists")
