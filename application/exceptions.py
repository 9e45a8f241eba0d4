"""
Application-layer exceptions.

These exceptions are used across application and infrastructure layers.
Storage adapters raise the low-level ones; the gateway decides which of them
are recovered and which reach the caller.
"""


class RemoteStoreError(Exception):
    """The remote store could not serve a request.

    Raised by remote adapters for network failures, timeouts and API errors.
    Never reaches engine callers: the gateway falls back to the local cache.
    """

    pass


class LocalCacheError(Exception):
    """The local key/value cache could not be read or written."""

    pass


class PersistenceError(Exception):
    """Neither the remote store nor the local cache accepted an operation.

    Raised by the gateway when a write (or a read with no default) fails on
    both tiers, so the data could not be kept anywhere.
    """

    pass


class ProgressUnavailableError(Exception):
    """No progress record can be resolved for the user.

    This is the one fatal condition of the engine: XP cannot be added and a
    workout cannot be logged without a progress record to operate on.
    """

    pass


class ExerciseTrackingNotFoundError(KeyError):
    """A set operation referenced an exercise that was never initialized."""

    def __init__(self, exercise_id: str):
        super().__init__(exercise_id)
        self.exercise_id = exercise_id

    def __str__(self) -> str:
        return f"No set tracking recorded for exercise '{self.exercise_id}'"
