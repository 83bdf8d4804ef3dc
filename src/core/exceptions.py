"""Exceptions shared by the engine's apps."""


class InvalidTransitionError(ValueError):
    """Raised when a state machine is asked for a transition it does not allow."""

    def __init__(self, entity, current, target, detail=""):
        self.entity = entity
        self.current = current
        self.target = target
        message = f"{entity}: cannot move from {current} to {target}."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class DataIntegrityError(RuntimeError):
    """A money invariant was violated. Never corrected silently."""
