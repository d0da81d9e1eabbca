class ReadingLogError(Exception):
    """Base exception for reading log operations"""
    pass


class ValidationError(ReadingLogError):
    """A required field is empty or a value is malformed"""
    pass


class SyncError(ReadingLogError):
    """A call to the remote sheet endpoint failed"""

    def __init__(self, message, action=None, status_code=None):
        super().__init__(message)
        self.action = action
        self.status_code = status_code


class NotFoundError(ReadingLogError):
    """A referenced book or sentence is not in the store"""
    pass


class FormatError(ReadingLogError):
    """An import workbook is unreadable or missing an expected sheet"""
    pass


class ImportInProgressError(ReadingLogError):
    """Another import is already running against the same log"""
    pass


class BookAPIError(ReadingLogError):
    """Custom exception for Google Books API operations"""
    pass


class CoverGenerationError(ReadingLogError):
    """Custom exception for cover image generation"""
    pass


class ConfigurationError(ReadingLogError):
    """The reading log endpoint has not been set up"""
    pass
