"""Exception classes for picsort"""


class PicsortError(Exception):
    """Base exception for all picsort errors"""
    pass


class ValidationError(PicsortError):
    """Raised when a required parameter is missing or invalid"""
    pass


class StoreError(PicsortError):
    """Base exception for index store failures"""
    pass


class StoreOpenError(StoreError):
    """Raised when the index store cannot be opened or created"""
    pass


class StoreCloseError(StoreError):
    """Raised when the index store cannot be released cleanly"""
    pass


class InsertError(StoreError):
    """Raised when a single row cannot be written to the index"""
    pass


class QueryError(StoreError):
    """Raised when the engine rejects a read query"""

    def __init__(self, message: str, sql: str = ""):
        super().__init__(message)
        self.sql = sql


class WalkError(PicsortError):
    """Raised when the ingestion root cannot be traversed"""

    def __init__(self, message: str, root: str = ""):
        super().__init__(message)
        self.root = root


class FileReadError(PicsortError, OSError):
    """Raised when a file cannot be opened or read while fingerprinting"""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path
