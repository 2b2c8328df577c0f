"""Error taxonomy shared by services, jobs and the HTTP layer."""


class MedReminderError(Exception):
    """Base class for all domain errors."""


class NotFoundError(MedReminderError):
    """A medication, report or user does not exist."""

    def __init__(self, kind: str, identifier):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class UnauthorizedError(MedReminderError):
    """The caller does not own the record it is acting on."""


class ValidationError(MedReminderError):
    """A request breaks a schedule or report invariant (e.g. weekly without a day)."""


class StorageError(MedReminderError):
    """Persisting an export or reading it back failed."""
