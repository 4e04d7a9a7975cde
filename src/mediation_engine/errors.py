"""
Mediation Errors

Every failure the engine can raise derives from MediationError.

Taxonomy:
- InvalidInputError: rejected before any state mutation (e.g. confidence outside [0, 1])
- MissingCollaboratorError: no generator configured and no manifestation supplied
- CollaboratorFailureError: generator/transform call raised (CollaboratorTimeoutError on deadline)
- IncompatibleVersionError: persisted state carries a schema version we do not read
- StateFileError: persisted state cannot be read, parsed or written

Exhaustion of correction attempts or of the cycle ceiling is NOT an error.
It is a normal terminal state reported through CycleState.termination_reason.
"""

from typing import Any, Optional


class MediationError(Exception):
    """Base class for mediation failures."""
    pass


class InvalidInputError(MediationError, ValueError):
    """An input value lies outside its permitted domain."""
    def __init__(self, field_name: str, value: Any, expected: str):
        self.field_name = field_name
        self.value = value
        self.expected = expected
        super().__init__(
            f"Invalid {field_name}: {value!r}. Must be {expected}."
        )


class MissingCollaboratorError(MediationError):
    """The cycle needs a collaborator that was not configured."""
    def __init__(self, role: str, detail: str = ""):
        self.role = role
        message = f"No {role} configured"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class CollaboratorFailureError(MediationError):
    """An external generator or transformer raised."""
    def __init__(
        self,
        role: str,
        cause: Optional[BaseException] = None,
        message: Optional[str] = None,
    ):
        self.role = role
        self.cause = cause
        if message is None:
            reason = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown failure"
            message = f"{role} failed ({reason})"
        super().__init__(message)


class CollaboratorTimeoutError(CollaboratorFailureError):
    """An external call exceeded its deadline."""
    def __init__(self, role: str, timeout: float):
        self.timeout = timeout
        super().__init__(role, message=f"{role} exceeded its {timeout:.1f}s deadline")


class IncompatibleVersionError(MediationError):
    """Persisted state was written by an incompatible schema version."""
    def __init__(self, found: Any, expected: str):
        self.found = found
        self.expected = expected
        super().__init__(
            f"Incompatible state version: {found}. Expected {expected}."
        )


class StateFileError(MediationError):
    """Persisted state could not be read or written."""
    def __init__(self, path: Any, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"State file {path}: {reason}")
