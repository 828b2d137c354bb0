"""
Queue domain services managing the waiting-request lifecycle.
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple
import asyncio
import logging

from peermatch.config.matching_config import MatchingConfig, get_matching_config
from peermatch.core.constants import QueuePriority, SessionCompatibility
from peermatch.domain.matching.scoring import utc_now
from peermatch.domain.matching.value_objects import MatchingRequest, SessionType, Urgency
from peermatch.utils.error_handling import (
    DuplicateQueueEntryError,
    ErrorHandler,
    MalformedQueueEntryError,
)
from peermatch.utils.validation import ensure_valid_request
from .entities import QueueEntry, QueuePosition, QueueStats, QueueStatus
from .repositories import QueueStore

logger = logging.getLogger(__name__)


def is_compatible_session(requested: SessionType, offered: SessionType) -> bool:
    """Check whether a queued session type can serve a requested one."""
    return offered.value in SessionCompatibility.MATRIX[requested.value]


class QueueLifecycle:
    """
    Owns every status transition of queue entries.

    Entries start WAITING and end in exactly one of MATCHED, EXPIRED or
    CANCELLED. All transitions go through the store's atomic primitives,
    so concurrent callers never both win the same entry.
    """

    def __init__(
        self,
        store: QueueStore,
        config: Optional[MatchingConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        average_match_seconds: float = QueuePriority.DEFAULT_AVERAGE_MATCH_SECONDS,
    ):
        self.store = store
        self.config = config or get_matching_config()
        self.clock = clock
        self.average_match_seconds = average_match_seconds

    def urgency_ttl(self, urgency: Urgency) -> timedelta:
        """Time-to-live for an entry of the given urgency."""
        ttl_minutes = self.config.queue.ttl_minutes
        match urgency:
            case Urgency.HIGH:
                minutes = ttl_minutes["high"]
            case Urgency.MEDIUM:
                minutes = ttl_minutes["medium"]
            case Urgency.LOW:
                minutes = ttl_minutes["low"]
            case _:
                raise ValueError(f"Unhandled urgency: {urgency!r}")
        return timedelta(minutes=minutes)

    async def admit(self, request: MatchingRequest) -> QueueEntry:
        """
        Add a request to the queue.

        Args:
            request: The matching request to enqueue

        Returns:
            The new waiting entry

        Raises:
            InputError: If the request is malformed
            DuplicateQueueEntryError: If the user already has a live waiting entry
        """
        request = ensure_valid_request(request)
        now = self.clock()
        entry = QueueEntry(
            request=request,
            enqueued_at=now,
            expires_at=now + self.urgency_ttl(request.urgency),
        )

        if not await self.store.insert_entry(entry.to_record(), now.timestamp()):
            raise DuplicateQueueEntryError(request.user_id)

        logger.info(
            f"Admitted {request.user_id} to queue ({request.session_type.value}, "
            f"{request.urgency.value}) until {entry.expires_at.isoformat()}"
        )
        return entry

    async def _load_entries(self) -> List[QueueEntry]:
        entries = []
        for record in await self.store.list_entries():
            try:
                entries.append(QueueEntry.from_record(record))
            except MalformedQueueEntryError as e:
                logger.warning(f"Skipping malformed queue record: {e.message}")
        return entries

    async def _expire(self, entry: QueueEntry) -> bool:
        return await self.store.compare_and_set_status(
            entry.user_id, entry.entry_id, QueueStatus.WAITING.value, QueueStatus.EXPIRED.value
        )

    async def _waiting_entries(self, now: datetime) -> List[QueueEntry]:
        """Live waiting entries; stale ones seen on the way are expired."""
        waiting = []
        for entry in await self._load_entries():
            if not entry.is_waiting():
                continue
            if entry.is_expired(now):
                await self._expire(entry)
                continue
            waiting.append(entry)
        return waiting

    async def candidate_pool(
        self, request: MatchingRequest, limit: Optional[int] = None
    ) -> List[QueueEntry]:
        """
        Get live waiting entries that can serve a request.

        Args:
            request: The requester's matching request
            limit: Maximum number of entries, defaults to the configured candidate limit

        Returns:
            Session-compatible entries other than the requester's own, highest
            queue priority first, then longest waiting, then by user ID
        """
        limit = self.config.queue.candidate_limit if limit is None else limit
        now = self.clock()

        pool = [
            entry
            for entry in await self._waiting_entries(now)
            if entry.user_id != request.user_id
            and is_compatible_session(request.session_type, entry.request.session_type)
        ]
        pool.sort(key=lambda entry: (-self.priority(entry, now), entry.enqueued_at, entry.user_id))
        return pool[:limit]

    async def current_entry(self, user_id: str) -> Optional[QueueEntry]:
        """The user's live waiting entry, or None if they are not waiting."""
        record = await self.store.get_entry(user_id)
        if record is None:
            return None
        try:
            entry = QueueEntry.from_record(record)
        except MalformedQueueEntryError as e:
            logger.warning(f"Ignoring malformed queue record for {user_id}: {e.message}")
            return None
        return entry if entry.is_available(self.clock()) else None

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """
        Expire every waiting entry past its TTL.

        Safe to run concurrently with itself and with claims: each entry is
        moved by compare-and-set, so only one caller wins it.

        Returns:
            Number of entries this call expired
        """
        now = now or self.clock()
        expired = 0
        for entry in await self._load_entries():
            if entry.is_waiting() and entry.is_expired(now) and await self._expire(entry):
                expired += 1

        if expired:
            logger.info(f"Expired {expired} stale queue entries")
        return expired

    async def remove(self, user_id: str) -> bool:
        """Cancel a user's waiting entry. Returns False if there was none to cancel."""
        record = await self.store.get_entry(user_id)
        if record is None:
            return False
        try:
            entry = QueueEntry.from_record(record)
        except MalformedQueueEntryError as e:
            logger.warning(f"Cannot cancel malformed queue record for {user_id}: {e.message}")
            return False
        if not entry.is_waiting():
            return False

        cancelled = await self.store.compare_and_set_status(
            user_id, entry.entry_id, QueueStatus.WAITING.value, QueueStatus.CANCELLED.value
        )
        if cancelled:
            logger.info(f"Removed {user_id} from queue")
        return cancelled

    async def try_claim(self, user_id: str) -> bool:
        """Atomically move a live waiting entry to MATCHED; at most one caller succeeds."""
        return await self.store.claim_pair(user_id, None, self.clock().timestamp())

    async def try_claim_pair(
        self, partner_id: str, requester_id: str, requester_entry_id: Optional[str] = None
    ) -> bool:
        """
        Atomically match a partner with the requester.

        Args:
            partner_id: The candidate to claim
            requester_id: The user asking for a match
            requester_entry_id: The requester's waiting entry, matched in the
                same step; None when the requester is not queued

        Returns:
            False if the partner is no longer available, or if the given
            requester entry was already claimed by a racing attempt
        """
        claimed = await self.store.claim_pair(
            partner_id, requester_id, self.clock().timestamp(), requester_entry_id
        )
        if claimed:
            logger.info(f"Matched {requester_id} with {partner_id}")
        return claimed

    def priority(self, entry: QueueEntry, now: Optional[datetime] = None) -> float:
        """Ordering score for a waiting entry: urgency, time waited, session type and skills."""
        now = now or self.clock()
        request = entry.request

        skill_points = min(
            QueuePriority.POINTS_PER_PREFERRED_SKILL * len(request.preferred_skills),
            QueuePriority.MAX_SKILL_POINTS,
        )
        priority = (
            QueuePriority.URGENCY_BASE[request.urgency.value]
            + QueuePriority.POINTS_PER_MINUTE_WAITED * entry.waited_minutes(now)
            + QueuePriority.SESSION_TYPE_BONUS[request.session_type.value]
            + skill_points
        )
        return round(priority, 2)

    def estimated_wait_seconds(self, position: int, urgency: Urgency) -> float:
        factor = QueuePriority.WAIT_FACTOR_BY_URGENCY[urgency.value]
        return max(
            QueuePriority.MIN_ESTIMATED_WAIT_SECONDS,
            round(position * self.average_match_seconds * factor, 2),
        )

    async def queue_status(self, user_id: str) -> Optional[QueuePosition]:
        """
        Get a waiting user's position by priority.

        Returns:
            QueuePosition with a 1-based position, or None if the user is not waiting
        """
        now = self.clock()
        ranked = sorted(
            await self._waiting_entries(now),
            key=lambda entry: (-self.priority(entry, now), entry.enqueued_at, entry.user_id),
        )
        for index, entry in enumerate(ranked, start=1):
            if entry.user_id == user_id:
                return QueuePosition(
                    position=index,
                    total_in_queue=len(ranked),
                    estimated_wait_seconds=self.estimated_wait_seconds(index, entry.request.urgency),
                )
        return None

    async def stats(self) -> QueueStats:
        """Summarize the live waiting entries."""
        now = self.clock()
        waiting = await self._waiting_entries(now)

        by_session_type: Dict[str, int] = {session_type.value: 0 for session_type in SessionType}
        by_urgency: Dict[str, int] = {urgency.value: 0 for urgency in Urgency}
        for entry in waiting:
            by_session_type[entry.request.session_type.value] += 1
            by_urgency[entry.request.urgency.value] += 1

        average_wait = (
            round(sum(entry.waited_minutes(now) for entry in waiting) / len(waiting), 2)
            if waiting
            else 0.0
        )
        return QueueStats(
            total_in_queue=len(waiting),
            by_session_type=by_session_type,
            by_urgency=by_urgency,
            average_wait_minutes=average_wait,
        )

    async def purge_terminal(
        self, older_than: timedelta, now: Optional[datetime] = None
    ) -> int:
        """Delete terminal records whose expiry is further back than ``older_than``."""
        now = now or self.clock()
        cutoff = now - older_than
        purged = 0
        for entry in await self._load_entries():
            if entry.status.is_terminal and entry.expires_at < cutoff:
                if await self.store.delete_entry(entry.user_id, entry.entry_id):
                    purged += 1

        if purged:
            logger.debug(f"Purged {purged} terminal queue records")
        return purged


class QueueSweeper:
    """
    Background task that expires stale entries and purges old terminal records.
    """

    def __init__(
        self,
        lifecycle: QueueLifecycle,
        interval_seconds: float,
        retention_seconds: float,
    ):
        self.lifecycle = lifecycle
        self.interval_seconds = interval_seconds
        self.retention = timedelta(seconds=retention_seconds)
        self.sweep_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self.sweep_task is not None and not self.sweep_task.done()

    def start(self):
        """Start the sweep loop on the running event loop."""
        if self.is_running:
            return
        self.sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Queue sweeper started (interval {self.interval_seconds}s)")

    async def stop(self):
        """Cancel the sweep loop and wait for it to finish."""
        if self.sweep_task:
            self.sweep_task.cancel()
            try:
                await self.sweep_task
            except asyncio.CancelledError:
                pass
            self.sweep_task = None

    async def run_once(self) -> Tuple[int, int]:
        """Run a single sweep, returning (expired, purged) counts."""
        expired = await self.lifecycle.sweep_expired()
        purged = await self.lifecycle.purge_terminal(self.retention)
        return expired, purged

    async def _sweep_loop(self):
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                try:
                    await self.run_once()
                except Exception as e:
                    ErrorHandler.log_error(
                        e, additional_context={"operation": "queue_sweep"}, logger_instance=logger
                    )
        except asyncio.CancelledError:
            logger.info("Queue sweeper loop cancelled")
            raise
