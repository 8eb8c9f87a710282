# -*- coding: utf-8 -*-


class TrackingError(Exception):
    """Base class for time-tracking failures."""


class NotFoundError(TrackingError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} not found: {entity_id}")


class NotTrackingError(TrackingError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} is not currently being tracked: {entity_id}")


class AlreadyTrackingError(TrackingError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} is already being tracked: {entity_id}")


class TaskMoveError(TrackingError):
    """A task cannot change project while its timer runs."""


class TransactionFailure(TrackingError):
    """The storage transaction could not complete; nothing was applied."""
