from __future__ import annotations

import uuid
from contextlib import contextmanager

import redis

from turn_engine.core.errors import SessionBusyError

# Compare-and-delete in one round trip, so a lock that expired and was re-taken
# between our check and our delete is never removed.
_RELEASE = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


@contextmanager
def session_lock(*, r: redis.Redis, session_id: str, ttl_ms: int = 5_000):
    """Best-effort per-session lock held for the duration of one turn.

    A second submission for the same session while a turn is running fails fast
    with SessionBusyError instead of waiting. The release only deletes the key if
    it still holds our token, so an expired lock re-taken by someone else survives.
    """

    key = f"lock:session:{session_id}"
    token = uuid.uuid4().hex
    acquired = r.set(key, token, nx=True, px=ttl_ms)
    if not acquired:
        raise SessionBusyError(f"Session {session_id} is busy")
    try:
        yield
    finally:
        r.eval(_RELEASE, 1, key, token)
