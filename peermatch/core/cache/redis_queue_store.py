import json
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from peermatch.core.config import Settings, get_settings
from peermatch.domain.queue.repositories import QueueStore, Record
from peermatch.utils.error_handling import QueueBackendError
from peermatch.utils.logger import logger


# All records live in one hash keyed by user ID; every mutation is a Lua
# script so Redis applies it atomically across nodes.
_DECODE = """
local function load(field)
    local raw = redis.call('HGET', KEYS[1], field)
    if not raw then
        return nil
    end
    local ok, record = pcall(cjson.decode, raw)
    if not ok or type(record) ~= 'table' then
        return nil
    end
    return record
end
"""

INSERT_SCRIPT = _DECODE + """
local existing = load(ARGV[1])
if existing and existing.status == 'waiting' then
    local expires = tonumber(existing.expires_ts)
    if expires and expires >= tonumber(ARGV[3]) then
        return 0
    end
end
redis.call('HSET', KEYS[1], ARGV[1], ARGV[2])
return 1
"""

COMPARE_AND_SET_SCRIPT = _DECODE + """
local record = load(ARGV[1])
if not record or record.entry_id ~= ARGV[2] or record.status ~= ARGV[3] then
    return 0
end
record.status = ARGV[4]
redis.call('HSET', KEYS[1], ARGV[1], cjson.encode(record))
return 1
"""

CLAIM_PAIR_SCRIPT = _DECODE + """
local partner = load(ARGV[1])
if not partner or partner.status ~= 'waiting' then
    return 0
end
local expires = tonumber(partner.expires_ts)
if not expires or expires < tonumber(ARGV[3]) then
    return 0
end
local requester = nil
if ARGV[4] ~= '' then
    requester = load(ARGV[2])
    if not requester or requester.entry_id ~= ARGV[4] or requester.status ~= 'waiting' then
        return 0
    end
end
partner.status = 'matched'
if ARGV[2] ~= '' then
    partner.matched_with = ARGV[2]
else
    partner.matched_with = cjson.null
end
redis.call('HSET', KEYS[1], ARGV[1], cjson.encode(partner))
if requester then
    requester.status = 'matched'
    requester.matched_with = ARGV[1]
    redis.call('HSET', KEYS[1], ARGV[2], cjson.encode(requester))
end
return 1
"""

DELETE_SCRIPT = _DECODE + """
if redis.call('HEXISTS', KEYS[1], ARGV[1]) == 0 then
    return 0
end
if ARGV[2] ~= '' then
    local record = load(ARGV[1])
    if not record or record.entry_id ~= ARGV[2] then
        return 0
    end
end
redis.call('HDEL', KEYS[1], ARGV[1])
return 1
"""


class RedisQueueStore(QueueStore):
    """
    Queue store shared by every matching node through Redis.

    The client must be created with ``decode_responses=True``.
    """

    def __init__(self, redis_client: aioredis.Redis, key_prefix: str = "peermatch:queue"):
        self.redis_client = redis_client
        self.entries_key = f"{key_prefix}:entries"

        self._insert = redis_client.register_script(INSERT_SCRIPT)
        self._compare_and_set = redis_client.register_script(COMPARE_AND_SET_SCRIPT)
        self._claim_pair = redis_client.register_script(CLAIM_PAIR_SCRIPT)
        self._delete = redis_client.register_script(DELETE_SCRIPT)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RedisQueueStore":
        """Build a store with its own connection pool from application settings."""
        settings = settings or get_settings()
        client = aioredis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        logger.info("Redis queue store configured", key_prefix=settings.QUEUE_KEY_PREFIX)
        return cls(client, key_prefix=settings.QUEUE_KEY_PREFIX)

    async def _run(self, operation: str, script, args: List[Any]) -> bool:
        try:
            result = await script(keys=[self.entries_key], args=args)
        except RedisError as e:
            logger.error("Redis queue operation failed", operation=operation, error=str(e))
            raise QueueBackendError(operation, original_error=e) from e
        return int(result) == 1

    async def insert_entry(self, record: Record, now_ts: float) -> bool:
        return await self._run(
            "insert_entry", self._insert, [record["user_id"], json.dumps(record), now_ts]
        )

    async def get_entry(self, user_id: str) -> Optional[Record]:
        try:
            raw = await self.redis_client.hget(self.entries_key, user_id)
        except RedisError as e:
            raise QueueBackendError("get_entry", original_error=e) from e
        if raw is None:
            return None
        return self._decode(user_id, raw)

    async def list_entries(self) -> List[Record]:
        try:
            raw_entries: Dict[str, str] = await self.redis_client.hgetall(self.entries_key)
        except RedisError as e:
            raise QueueBackendError("list_entries", original_error=e) from e

        records = []
        for user_id, raw in raw_entries.items():
            record = self._decode(user_id, raw)
            if record is not None:
                records.append(record)
        return records

    async def compare_and_set_status(
        self, user_id: str, entry_id: str, expected: str, new: str
    ) -> bool:
        return await self._run(
            "compare_and_set_status",
            self._compare_and_set,
            [user_id, entry_id, expected, new],
        )

    async def claim_pair(
        self,
        partner_id: str,
        requester_id: Optional[str],
        now_ts: float,
        requester_entry_id: Optional[str] = None,
    ) -> bool:
        return await self._run(
            "claim_pair",
            self._claim_pair,
            [partner_id, requester_id or "", now_ts, requester_entry_id or ""],
        )

    async def delete_entry(self, user_id: str, entry_id: Optional[str] = None) -> bool:
        return await self._run("delete_entry", self._delete, [user_id, entry_id or ""])

    async def close(self):
        """Release the underlying connection pool."""
        await self.redis_client.aclose()

    def _decode(self, user_id: str, raw: str) -> Optional[Record]:
        try:
            record = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Undecodable queue record", user_id=user_id, error=str(e))
            return None
        if not isinstance(record, dict):
            logger.warning("Queue record is not an object", user_id=user_id)
            return None
        return record
