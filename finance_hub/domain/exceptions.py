"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class RemoteSyncError(DomainException):
    """Remote service returned an error or is unavailable"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidRemotePayloadError(RemoteSyncError):
    """Remote response could not be parsed as a whole"""

    pass


class InvalidRecordError(DomainException):
    """A single remote row is malformed"""

    pass


class MissingRemoteIdError(DomainException):
    """Remote update/delete requested for a record that was never synced"""

    pass


class RecordNotFoundError(DomainException):
    """Local record does not exist"""

    pass


class SyncInProgressError(DomainException):
    """Another composite sync currently holds the sync guard"""

    pass
