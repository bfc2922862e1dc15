"""
Remote event store exceptions.
"""


class RemoteStoreError(Exception):
    """
    Base exception for remote store failures.

    The sync queue retries any of these before giving up.
    """
    pass


class RemoteTimeoutError(RemoteStoreError):
    """
    Remote store did not answer in time.

    Raised when:
    - A NATS request times out
    - No responder is listening on the subject
    """
    pass


class RemoteResponseError(RemoteStoreError):
    """
    Remote store answered with a failure.

    Raised when:
    - The reply reports success=false
    - The reply is not valid JSON
    """
    pass
