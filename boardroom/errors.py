"""Error taxonomy for the board meeting engine."""


class BoardroomError(Exception):
    """Base class for every error surfaced to a caller."""


class NotFoundError(BoardroomError):
    """A meeting, director, participant or question does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class InvalidStateError(BoardroomError):
    """The meeting status forbids the requested operation."""


class NoParticipantsError(BoardroomError):
    """The meeting has no active participants."""


class ValidationError(BoardroomError):
    """Caller input is missing or malformed."""


class GenerationFailure(BoardroomError):
    """The generation service failed or returned a non-success result."""


class MalformedGenerationOutput(BoardroomError):
    """Generated text could not be parsed into the expected structure."""


class TurnConflictError(BoardroomError):
    """The statement history changed between scheduling and recording."""

    def __init__(self, meeting_id: str, expected: int, actual: int) -> None:
        self.meeting_id = meeting_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Meeting {meeting_id} advanced concurrently: "
            f"expected {expected} statements, found {actual}"
        )
