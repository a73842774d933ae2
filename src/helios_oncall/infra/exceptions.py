"""
Custom exceptions for on-call scheduling.

ValidationError and NotFoundError are fatal for the current call.
DegradedConfigError describes configuration the generator can work around;
it is only raised when a caller asks for strict behavior.
"""


class OnCallError(Exception):
    """Base exception for all on-call scheduling errors."""

    pass


class ValidationError(OnCallError):
    """Raised when input is rejected before any work is done."""

    pass


class InvalidRangeError(ValidationError):
    """Raised when a time range is empty or inverted."""

    pass


class NotFoundError(OnCallError):
    """Raised when a referenced definition does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} {identifier!r} not found")
        self.kind = kind
        self.identifier = identifier


class PlanNotFoundError(NotFoundError):
    def __init__(self, identifier: str) -> None:
        super().__init__("Plan", identifier)


class TeamNotFoundError(NotFoundError):
    def __init__(self, identifier: str) -> None:
        super().__init__("Team", identifier)


class BindingNotFoundError(NotFoundError):
    def __init__(self, identifier: str) -> None:
        super().__init__("Binding for customer", identifier)


class DegradedConfigError(OnCallError):
    """Raised in strict mode for configuration that would otherwise degrade."""

    pass


class GenerationCancelled(OnCallError):
    """Raised when a generation run observes its cancel signal."""

    pass
