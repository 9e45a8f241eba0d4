"""
Progress Persistence Gateway.

Two-tier record storage behind one read/write interface:

- the remote store is always tried first (with retries);
- when it is unreachable, reads and writes transparently use the local cache;
- there is no automatic reconciliation between the tiers. Whichever tier was
  last written within an operation holds the effective value until `resync`
  copies the remote value back over the local one.

Writes are not transactional across record kinds. Callers that update several
kinds in one logical operation issue independent writes and must tolerate one
of them landing in a different tier than the other.

Usage:
    gateway = ProgressGateway(remote_store, local_cache)
    progress = await gateway.read(PROGRESS, "user-1")
    progress = await gateway.write(PROGRESS, "user-1", progress)
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from application.exceptions import LocalCacheError, PersistenceError, RemoteStoreError
from application.ports.local_cache import LocalCache
from application.ports.remote_store import RemoteRecordStore
from domain.models import (
    CompletedSession,
    ExerciseSetTracking,
    TrainingPreferences,
    UserGamificationStats,
    UserProgress,
    WorkoutSessionData,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

DEFAULT_RETRY_ATTEMPTS = 2
DEFAULT_MIN_WAIT_SECONDS = 0.2
DEFAULT_MAX_WAIT_SECONDS = 2.0


# =============================================================================
# Record kinds
# =============================================================================


@dataclass(frozen=True)
class RecordKind(Generic[M]):
    """
    Describes how one record type is stored in both tiers.

    Attributes:
        table: Remote table name, also the local key prefix
        model: Pydantic model the rows (de)serialize to
        key_column: Column holding the per-record key for kinds with several
            records per user (None for one-record-per-user kinds)
        data_column: JSON column holding the nested record, or None when the
            record's fields map directly onto columns
        default: Factory for the record returned when none exists yet
        is_log: Append-only history (read_log/append_log) instead of a record
    """

    table: str
    model: Type[M]
    key_column: Optional[str] = None
    data_column: Optional[str] = None
    default: Optional[Callable[[str], M]] = None
    is_log: bool = False

    def match(self, user_id: str, key: Optional[str] = None) -> Dict[str, str]:
        match = {"user_id": user_id}
        if self.key_column is not None:
            if not key:
                raise ValueError(f"{self.table} records need a key ({self.key_column})")
            match[self.key_column] = key
        return match

    def local_key(self, user_id: str, key: Optional[str] = None) -> str:
        if self.key_column is not None and key:
            return f"{self.table}:{user_id}:{key}"
        return f"{self.table}:{user_id}"

    def default_for(self, user_id: str) -> Optional[M]:
        return self.default(user_id) if self.default is not None else None

    def to_row(self, record: M) -> Dict[str, Any]:
        payload = record.model_dump(mode="json")
        if self.data_column is not None:
            return {self.data_column: payload}
        return payload

    def from_row(self, row: Dict[str, Any]) -> M:
        if self.data_column is not None:
            data = row.get(self.data_column)
            if isinstance(data, str):
                data = json.loads(data)
            return self.model.model_validate(data)
        return self.model.model_validate(row)


PROGRESS: RecordKind[UserProgress] = RecordKind(
    table="user_progress",
    model=UserProgress,
    default=lambda user_id: UserProgress(user_id=user_id),
)

GAMIFICATION_STATS: RecordKind[UserGamificationStats] = RecordKind(
    table="user_gamification",
    model=UserGamificationStats,
    default=lambda user_id: UserGamificationStats(user_id=user_id),
)

PREFERENCES: RecordKind[TrainingPreferences] = RecordKind(
    table="user_preferences",
    model=TrainingPreferences,
    default=lambda user_id: TrainingPreferences(user_id=user_id),
)

EXERCISE_SET_TRACKING: RecordKind[ExerciseSetTracking] = RecordKind(
    table="exercise_set_tracking",
    model=ExerciseSetTracking,
    key_column="exercise_id",
    data_column="data",
)

WORKOUT_SESSION: RecordKind[WorkoutSessionData] = RecordKind(
    table="workout_sessions",
    model=WorkoutSessionData,
    key_column="session_id",
    data_column="data",
)

COMPLETED_SESSIONS: RecordKind[CompletedSession] = RecordKind(
    table="completed_sessions",
    model=CompletedSession,
    is_log=True,
)


# =============================================================================
# Gateway
# =============================================================================


class ProgressGateway:
    """
    Remote-first record storage with a local fallback.

    Not-found is never an error: reads return the kind's default (or None for
    kinds without one). Remote failures are logged and recovered through the
    local cache. PersistenceError is raised only when both tiers fail and
    there is nothing sensible to return.
    """

    def __init__(
        self,
        remote: RemoteRecordStore,
        local: LocalCache,
        *,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_min_wait: float = DEFAULT_MIN_WAIT_SECONDS,
        retry_max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
    ):
        """
        Initialize the gateway.

        Args:
            remote: Remote record store (injected)
            local: Local key/value cache (injected)
            retry_attempts: Remote attempts per operation before falling back
            retry_min_wait: Base backoff between remote attempts, in seconds
            retry_max_wait: Backoff ceiling, in seconds
        """
        self._remote = remote
        self._local = local
        self._retry_attempts = max(1, retry_attempts)
        self._retry_min_wait = retry_min_wait
        self._retry_max_wait = retry_max_wait

    # -------------------------------------------------------------------------
    # Single records
    # -------------------------------------------------------------------------

    async def read(
        self,
        kind: RecordKind[M],
        user_id: str,
        key: Optional[str] = None,
    ) -> Optional[M]:
        """
        Read one record, remote first.

        Returns:
            The stored record, the kind's default when none exists, or None
            for kinds without a default
        """
        match = kind.match(user_id, key)
        try:
            row = await self._with_retry(lambda: self._remote.fetch_one(kind.table, match))
        except RemoteStoreError as e:
            logger.warning(f"Remote read of {kind.table} for {user_id} failed, using local cache: {e}")
            return self._read_local(kind, user_id, key)

        if row is None:
            return kind.default_for(user_id)

        try:
            return kind.from_row(row)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Malformed {kind.table} row for {user_id}, using local cache: {e}")
            return self._read_local(kind, user_id, key)

    async def write(
        self,
        kind: RecordKind[M],
        user_id: str,
        record: M,
        key: Optional[str] = None,
    ) -> M:
        """
        Write one record: update if it exists, insert otherwise.

        On remote failure the record is written to the local cache instead
        and the locally stored record is returned as the effective result.

        Raises:
            PersistenceError: Both the remote store and the local cache failed
        """
        match = kind.match(user_id, key)
        row = kind.to_row(record)
        try:
            stored = await self._with_retry(lambda: self._remote.upsert(kind.table, match, row))
        except RemoteStoreError as e:
            logger.warning(f"Remote write of {kind.table} for {user_id} failed, writing local cache: {e}")
            return self._write_local(kind, user_id, record, key)

        if not stored:
            return record
        try:
            return kind.from_row(stored)
        except (ValidationError, ValueError):
            return record

    async def resync(
        self,
        kind: RecordKind[M],
        user_id: str,
        key: Optional[str] = None,
    ) -> bool:
        """
        Overwrite the local copy with the remote value.

        This is the only reconciliation step; it never merges.

        Returns:
            True if the local copy was refreshed, False if the remote store
            was unreachable or held nothing
        """
        try:
            if kind.is_log:
                rows = await self._with_retry(
                    lambda: self._remote.fetch_many(
                        kind.table, kind.match(user_id), order_by="created_at", descending=True
                    )
                )
                records = [kind.from_row(row) for row in rows]
                self._store_local_log(kind, user_id, records)
                return True

            row = await self._with_retry(
                lambda: self._remote.fetch_one(kind.table, kind.match(user_id, key))
            )
        except RemoteStoreError as e:
            logger.warning(f"Resync of {kind.table} for {user_id} skipped, remote unavailable: {e}")
            return False

        if row is None:
            return False
        self._write_local(kind, user_id, kind.from_row(row), key)
        logger.info(f"Local cache for {kind.table}/{user_id} refreshed from remote")
        return True

    # -------------------------------------------------------------------------
    # Append-only logs
    # -------------------------------------------------------------------------

    async def read_log(
        self,
        kind: RecordKind[M],
        user_id: str,
        *,
        limit: Optional[int] = None,
    ) -> List[M]:
        """
        Read a user's history, newest first.

        Returns:
            The entries, or an empty list when there are none
        """
        try:
            rows = await self._with_retry(
                lambda: self._remote.fetch_many(
                    kind.table,
                    kind.match(user_id),
                    order_by="created_at",
                    descending=True,
                    limit=limit,
                )
            )
        except RemoteStoreError as e:
            logger.warning(f"Remote read of {kind.table} for {user_id} failed, using local cache: {e}")
            entries = self._read_local_log(kind, user_id)
            return entries[:limit] if limit is not None else entries

        entries = []
        for row in rows:
            try:
                entries.append(kind.from_row(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {kind.table} row for {user_id}: {e}")
        return entries

    async def append_log(self, kind: RecordKind[M], user_id: str, record: M) -> M:
        """
        Append one entry to a user's history.

        Raises:
            PersistenceError: Both the remote store and the local cache failed
        """
        row = kind.to_row(record)
        try:
            stored = await self._with_retry(lambda: self._remote.insert(kind.table, row))
        except RemoteStoreError as e:
            logger.warning(f"Remote append to {kind.table} for {user_id} failed, writing local cache: {e}")
            entries = self._read_local_log(kind, user_id)
            entries.append(record)
            self._store_local_log(kind, user_id, entries)
            return record

        try:
            return kind.from_row(stored) if stored else record
        except ValidationError:
            return record

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _with_retry(self, call: Callable[[], Awaitable[T]]) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=self._retry_min_wait, max=self._retry_max_wait),
            retry=retry_if_exception_type(RemoteStoreError),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await call()
        raise RemoteStoreError("remote call was not attempted")

    def _read_local(
        self,
        kind: RecordKind[M],
        user_id: str,
        key: Optional[str],
    ) -> Optional[M]:
        cache_key = kind.local_key(user_id, key)
        try:
            blob = self._local.get(cache_key)
        except LocalCacheError as e:
            default = kind.default_for(user_id)
            if default is None:
                raise PersistenceError(f"{kind.table} for {user_id} unavailable in both tiers") from e
            logger.exception(f"Local cache read of {cache_key} failed, returning default")
            return default

        if blob is None:
            return kind.default_for(user_id)
        try:
            return kind.model.model_validate_json(blob)
        except ValidationError as e:
            logger.warning(f"Corrupt local cache entry {cache_key}, returning default: {e}")
            return kind.default_for(user_id)

    def _write_local(
        self,
        kind: RecordKind[M],
        user_id: str,
        record: M,
        key: Optional[str],
    ) -> M:
        cache_key = kind.local_key(user_id, key)
        blob = record.model_dump_json()
        try:
            self._local.set(cache_key, blob)
        except LocalCacheError as e:
            logger.exception(f"Local cache write of {cache_key} failed after remote failure")
            raise PersistenceError(f"{kind.table} for {user_id} could not be stored") from e
        return kind.model.model_validate_json(blob)

    def _read_local_log(self, kind: RecordKind[M], user_id: str) -> List[M]:
        cache_key = kind.local_key(user_id)
        try:
            blob = self._local.get(cache_key)
        except LocalCacheError as e:
            raise PersistenceError(f"{kind.table} for {user_id} unavailable in both tiers") from e
        if blob is None:
            return []

        try:
            items = json.loads(blob)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt local cache entry {cache_key}, ignoring: {e}")
            return []

        entries = []
        for item in items:
            try:
                entries.append(kind.model.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed entry in {cache_key}: {e}")
        entries.sort(key=lambda entry: getattr(entry, "created_at"), reverse=True)
        return entries

    def _store_local_log(self, kind: RecordKind[M], user_id: str, entries: List[M]) -> None:
        cache_key = kind.local_key(user_id)
        blob = json.dumps([entry.model_dump(mode="json") for entry in entries])
        try:
            self._local.set(cache_key, blob)
        except LocalCacheError as e:
            logger.exception(f"Local cache write of {cache_key} failed after remote failure")
            raise PersistenceError(f"{kind.table} for {user_id} could not be stored") from e
