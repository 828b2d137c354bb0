"""
Queue domain repositories providing backend storage interfaces and implementations.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import asyncio
import copy

Record = Dict[str, Any]

WAITING = "waiting"
MATCHED = "matched"


class QueueStore(ABC):
    """
    Abstract backend for queue records, one record per user.

    Every mutating primitive is atomic with respect to all other callers of
    the same store, including callers on other nodes for shared backends.
    Records are the plain dictionaries produced by ``QueueEntry.to_record``.
    """

    @abstractmethod
    async def insert_entry(self, record: Record, now_ts: float) -> bool:
        """
        Store a record unless the user already has a live waiting one.

        A waiting record whose ``expires_ts`` is before ``now_ts`` counts as
        stale and is replaced. Returns False when the insert was rejected.
        """
        pass

    @abstractmethod
    async def get_entry(self, user_id: str) -> Optional[Record]:
        """Retrieve the record for a user."""
        pass

    @abstractmethod
    async def list_entries(self) -> List[Record]:
        """Get every stored record, in no particular order."""
        pass

    @abstractmethod
    async def compare_and_set_status(
        self, user_id: str, entry_id: str, expected: str, new: str
    ) -> bool:
        """Move a record from ``expected`` to ``new`` if it is still that entry in that state."""
        pass

    @abstractmethod
    async def claim_pair(
        self,
        partner_id: str,
        requester_id: Optional[str],
        now_ts: float,
        requester_entry_id: Optional[str] = None,
    ) -> bool:
        """
        Atomically mark a live waiting partner as matched.

        When ``requester_entry_id`` is given, the requester's record must
        still be that entry and still be waiting; it is marked matched in the
        same step. Without it, any record the requester has is left alone.
        Returns False if either side was already taken.
        """
        pass

    @abstractmethod
    async def delete_entry(self, user_id: str, entry_id: Optional[str] = None) -> bool:
        """Delete a user's record, optionally only if it is still ``entry_id``."""
        pass


class InMemoryQueueStore(QueueStore):
    """
    Process-local queue store guarded by a single asyncio lock.

    Suitable for tests and single-process deployments.
    """

    def __init__(self):
        self._records: Dict[str, Record] = {}
        self._lock = asyncio.Lock()

    async def insert_entry(self, record: Record, now_ts: float) -> bool:
        async with self._lock:
            existing = self._records.get(record["user_id"])
            if existing is not None and existing.get("status") == WAITING:
                expires_ts = existing.get("expires_ts")
                if isinstance(expires_ts, (int, float)) and expires_ts >= now_ts:
                    return False
            self._records[record["user_id"]] = copy.deepcopy(record)
            return True

    async def get_entry(self, user_id: str) -> Optional[Record]:
        async with self._lock:
            record = self._records.get(user_id)
            return copy.deepcopy(record) if record is not None else None

    async def list_entries(self) -> List[Record]:
        async with self._lock:
            return [copy.deepcopy(record) for record in self._records.values()]

    async def compare_and_set_status(
        self, user_id: str, entry_id: str, expected: str, new: str
    ) -> bool:
        async with self._lock:
            record = self._records.get(user_id)
            if record is None or record.get("entry_id") != entry_id:
                return False
            if record.get("status") != expected:
                return False
            record["status"] = new
            return True

    async def claim_pair(
        self,
        partner_id: str,
        requester_id: Optional[str],
        now_ts: float,
        requester_entry_id: Optional[str] = None,
    ) -> bool:
        async with self._lock:
            partner = self._records.get(partner_id)
            if partner is None or partner.get("status") != WAITING:
                return False
            expires_ts = partner.get("expires_ts")
            if not isinstance(expires_ts, (int, float)) or expires_ts < now_ts:
                return False

            requester = None
            if requester_entry_id is not None:
                requester = self._records.get(requester_id)
                if (
                    requester is None
                    or requester.get("entry_id") != requester_entry_id
                    or requester.get("status") != WAITING
                ):
                    return False

            partner["status"] = MATCHED
            partner["matched_with"] = requester_id
            if requester is not None:
                requester["status"] = MATCHED
                requester["matched_with"] = partner_id
            return True

    async def delete_entry(self, user_id: str, entry_id: Optional[str] = None) -> bool:
        async with self._lock:
            record = self._records.get(user_id)
            if record is None:
                return False
            if entry_id is not None and record.get("entry_id") != entry_id:
                return False
            del self._records[user_id]
            return True
