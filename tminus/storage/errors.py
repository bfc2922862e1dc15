"""
Local storage exceptions.

Saves raise these so the mutation that triggered them can report the
failure. Loads never raise; they log and return empty results.
"""


class StorageError(Exception):
    """
    Base exception for local storage errors.

    Raised when:
    - Events or the theme cannot be serialized
    - The database write fails
    """
    pass


class StorageConnectionError(StorageError):
    """
    Local database unavailable.

    Raised when:
    - The engine cannot create the schema on connect
    - An operation is attempted before connect()
    """
    pass
