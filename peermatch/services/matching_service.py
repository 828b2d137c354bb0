"""
Public matching entry point tying profiles, the queue, selection and analytics together.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Mapping, Optional, TypeVar, Union

from peermatch.config.matching_config import MatchingConfig, get_matching_config
from peermatch.core.cache.redis_queue_store import RedisQueueStore
from peermatch.core.config import Settings, get_settings
from peermatch.domain.matching.entities import MatchResult, ScoredCandidate
from peermatch.domain.matching.repositories import ProfileStore
from peermatch.domain.matching.scoring import utc_now
from peermatch.domain.matching.services import MatchSelector, build_match_result
from peermatch.domain.matching.value_objects import MatchingRequest, UserProfile
from peermatch.domain.queue.entities import QueueEntry, QueuePosition, QueueStats
from peermatch.domain.queue.repositories import InMemoryQueueStore, QueueStore
from peermatch.domain.queue.services import QueueLifecycle, QueueSweeper
from peermatch.services.analytics import AnalyticsSink, LoggingAnalyticsSink, MatchingAttempt
from peermatch.utils.error_handling import (
    CollaboratorTimeoutError,
    ConcurrencyConflictError,
    ProfileNotFoundError,
    QueueBackendError,
)
from peermatch.utils.logger import logger
from peermatch.utils.validation import ensure_valid_request

T = TypeVar("T")


@dataclass(frozen=True)
class MatchInputs:
    """Everything one match attempt loads before ranking."""

    requester: UserProfile
    candidates: List[UserProfile]
    pool_size: int
    requester_entry_id: Optional[str] = None


class MatchingService:
    """
    Finds a partner for a queued user.

    ``find_match`` raises only for a malformed request (InputError) or a
    missing requester profile (ProfileNotFoundError). Every other failure
    (timeouts, backend outages, lost claims) ends as "no match" and the
    requester stays in the queue.
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        queue: QueueLifecycle,
        analytics: Optional[AnalyticsSink] = None,
        selector: Optional[MatchSelector] = None,
        config: Optional[MatchingConfig] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
        sweeper: Optional[QueueSweeper] = None,
    ):
        self.profile_store = profile_store
        self.queue = queue
        self.analytics = analytics or LoggingAnalyticsSink()
        self.config = config or get_matching_config()
        self.selector = selector or MatchSelector(config=self.config)
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else get_settings().COLLABORATOR_TIMEOUT_SECONDS
        )
        self.clock = clock
        self.sweeper = sweeper

    async def start(self):
        """Start background queue maintenance, if configured."""
        if self.sweeper:
            self.sweeper.start()

    async def stop(self):
        if self.sweeper:
            await self.sweeper.stop()

    async def enqueue(self, request: Union[MatchingRequest, Mapping[str, Any]]) -> QueueEntry:
        """Add a request to the waiting queue."""
        return await self.queue.admit(ensure_valid_request(request))

    async def cancel(self, user_id: str) -> bool:
        """Withdraw a user's waiting request."""
        return await self.queue.remove(user_id)

    async def queue_status(self, user_id: str) -> Optional[QueuePosition]:
        return await self.queue.queue_status(user_id)

    async def queue_stats(self) -> QueueStats:
        return await self.queue.stats()

    async def find_match(
        self, request: Union[MatchingRequest, Mapping[str, Any]]
    ) -> Optional[MatchResult]:
        """
        Find and claim the best available partner for a request.

        Args:
            request: The requester's matching request

        Returns:
            MatchResult for the claimed partner, or None when nobody
            qualifies, every claim was lost, the queue backend failed, or
            loading and claiming together overran the time budget

        Raises:
            InputError: If the request is malformed
            ProfileNotFoundError: If the requester has no profile
        """
        started = time.perf_counter()
        request = ensure_valid_request(request)
        log = logger.bind(user_id=request.user_id)
        deadline = asyncio.get_running_loop().time() + self.timeout_seconds

        pool_size = 0
        result = None
        try:
            inputs = await self._within_budget(
                self._gather_inputs(request), "load_match_inputs", deadline
            )
            pool_size = inputs.pool_size
            ranked = self.selector.rank_candidates(inputs.requester, inputs.candidates, request)
            result = await self._within_budget(
                self._claim_best(request, ranked, inputs.requester_entry_id, started),
                "claim_candidate",
                deadline,
            )
        except CollaboratorTimeoutError as e:
            log.warning(
                "Matching collaborators timed out",
                operation=e.operation,
                timeout_seconds=e.timeout_seconds,
            )
        except QueueBackendError as e:
            e.log_error()

        latency_ms = round((time.perf_counter() - started) * 1000, 3)
        await self._record_attempt(request, result, latency_ms, pool_size)

        if result:
            log.info(
                "Match found",
                partner_id=result.partner_id,
                compatibility_score=result.compatibility_score,
                latency_ms=latency_ms,
            )
        else:
            log.info("No match found", pool_size=pool_size, latency_ms=latency_ms)
        return result

    async def _within_budget(self, operation: Awaitable[T], name: str, deadline: float) -> T:
        """Run one phase of a match attempt in whatever remains of its time budget."""
        remaining = max(deadline - asyncio.get_running_loop().time(), 0)
        try:
            return await asyncio.wait_for(operation, remaining)
        except asyncio.TimeoutError as e:
            raise CollaboratorTimeoutError(name, self.timeout_seconds) from e

    async def _gather_inputs(self, request: MatchingRequest) -> MatchInputs:
        requester = await self.profile_store.get_profile(request.user_id)
        if requester is None:
            raise ProfileNotFoundError(request.user_id)

        pool = await self.queue.candidate_pool(request)
        profiles = await asyncio.gather(
            *(self.profile_store.get_profile(entry.user_id) for entry in pool)
        )

        # gather keeps pool order, which the selector relies on for ties
        candidates = [profile for profile in profiles if profile is not None and profile.is_active]
        if len(candidates) < len(pool):
            logger.debug(
                "Skipped unavailable candidate profiles",
                user_id=request.user_id,
                skipped=len(pool) - len(candidates),
            )

        # Older cancelled, expired or matched records do not block a new match
        own_entry = await self.queue.current_entry(request.user_id)
        return MatchInputs(
            requester=requester,
            candidates=candidates,
            pool_size=len(pool),
            requester_entry_id=own_entry.entry_id if own_entry else None,
        )

    async def _claim(
        self, candidate: ScoredCandidate, requester_id: str, requester_entry_id: Optional[str]
    ) -> None:
        if not await self.queue.try_claim_pair(candidate.user_id, requester_id, requester_entry_id):
            raise ConcurrencyConflictError(candidate.user_id)

    async def _claim_best(
        self,
        request: MatchingRequest,
        ranked: List[ScoredCandidate],
        requester_entry_id: Optional[str],
        started: float,
    ) -> Optional[MatchResult]:
        """Claim the best candidate, moving down the ranking after a lost claim."""
        for candidate in ranked[: self.config.claim_retry_limit + 1]:
            try:
                await self._claim(candidate, request.user_id, requester_entry_id)
            except ConcurrencyConflictError as e:
                logger.info(
                    "Candidate claimed by another attempt",
                    user_id=request.user_id,
                    candidate_id=e.user_id,
                )
                continue
            return build_match_result(candidate, started)
        return None

    async def _record_attempt(
        self,
        request: MatchingRequest,
        result: Optional[MatchResult],
        latency_ms: float,
        pool_size: int,
    ):
        attempt = MatchingAttempt(
            timestamp=self.clock(),
            user_id=request.user_id,
            match_found=result is not None,
            compatibility_score=result.compatibility_score if result else None,
            latency_ms=latency_ms,
            pool_size=pool_size,
        )
        try:
            await self.analytics.record(attempt)
        except Exception as e:
            logger.warning(
                "Failed to record matching analytics", user_id=request.user_id, error=str(e)
            )


def build_queue_store(settings: Optional[Settings] = None) -> QueueStore:
    """Create the queue backend selected by ``QUEUE_BACKEND``."""
    settings = settings or get_settings()
    match settings.QUEUE_BACKEND:
        case "memory":
            return InMemoryQueueStore()
        case "redis":
            return RedisQueueStore.from_settings(settings)


def create_matching_service(
    profile_store: ProfileStore,
    settings: Optional[Settings] = None,
    analytics: Optional[AnalyticsSink] = None,
    queue_store: Optional[QueueStore] = None,
    config: Optional[MatchingConfig] = None,
) -> MatchingService:
    """Wire a MatchingService and its queue sweeper from application settings."""
    settings = settings or get_settings()
    config = config or get_matching_config()

    queue = QueueLifecycle(queue_store or build_queue_store(settings), config=config)
    sweeper = QueueSweeper(
        queue,
        interval_seconds=settings.QUEUE_SWEEP_INTERVAL_SECONDS,
        retention_seconds=settings.QUEUE_RETENTION_SECONDS,
    )
    return MatchingService(
        profile_store,
        queue,
        analytics=analytics,
        config=config,
        timeout_seconds=settings.COLLABORATOR_TIMEOUT_SECONDS,
        sweeper=sweeper,
    )
