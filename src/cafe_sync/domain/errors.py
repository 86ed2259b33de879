"""Error taxonomy shared by services, adapters and the API layer."""


class SyncError(Exception):
    """Base class for errors raised by the sync subsystem."""


class ValidationError(SyncError):
    """Mutation input is malformed or missing; nothing was persisted."""


class NotFoundError(SyncError):
    """A mutation or lookup targeted a document that does not exist."""


class StorageError(SyncError):
    """The document store or blob store failed."""


class TransportError(SyncError):
    """The realtime channel is unavailable for a session."""
