from typing import Iterable


class RecordingError(Exception):
    """Base class for errors raised by the recording core."""


class ValidationError(RecordingError, ValueError):
    """Input rejected before any persistence access."""


class InvalidField(ValidationError):
    def __init__(self, fields: Iterable[str], allowed: Iterable[str] = ()):
        self.fields = sorted(fields)
        self.allowed = sorted(allowed)
        super().__init__(f"Fields not allowed: {', '.join(self.fields)}")


class InvalidLocation(ValidationError):
    pass


class InvalidState(RecordingError, ValueError):
    def __init__(self, recording_type: str | None, state: str | None):
        self.recording_type = recording_type
        self.state = state
        super().__init__(
            f"Processing state {state!r} is not valid for type {recording_type!r}"
        )


class JobMismatch(RecordingError):
    pass
