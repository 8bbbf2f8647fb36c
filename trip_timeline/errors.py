"""Exceptions raised by the trip timeline core and service layer."""


class TripTimelineError(Exception):
    pass


class ExtractionFailure(TripTimelineError):
    """The extraction collaborator returned no usable segments."""


class ValidationFailure(TripTimelineError):
    """A single segment cannot become a travel step."""

    def __init__(self, reason: str, index: int = -1):
        super().__init__(reason)
        self.reason = reason
        self.index = index


class GroupingFailure(TripTimelineError):
    """Trip clustering, naming or membership writes failed."""


class NotFound(TripTimelineError):
    pass
