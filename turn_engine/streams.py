from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import cast

import redis

# Keep each session's feed bounded; old turns remain in the session record's history.
FEED_MAXLEN = 1_000


@dataclass(frozen=True, slots=True)
class SessionFeed:
    session_id: str

    @property
    def key(self) -> str:
        return f"feed:{self.session_id}"


def publish_to_feed(*, r: redis.Redis, feed: SessionFeed, fields: Mapping[str, str]) -> str:
    """Append an entry to a session's feed stream."""

    # redis-py stubs expect field/value unions; in our app we only use string fields/values.
    stream_id = r.xadd(feed.key, {str(k): str(v) for k, v in fields.items()}, maxlen=FEED_MAXLEN, approximate=True)
    return cast(str, stream_id)


def publish_many(*, r: redis.Redis, entries: Sequence[tuple[str, Mapping[str, str]]]) -> list[str]:
    ids: list[str] = []
    for key, fields in entries:
        stream_id = r.xadd(key, {str(k): str(v) for k, v in fields.items()}, maxlen=FEED_MAXLEN, approximate=True)
        ids.append(cast(str, stream_id))
    return ids


def read_feed(*, r: redis.Redis, feed: SessionFeed, count: int = 20, start: str = "-", end: str = "+") -> list[tuple[str, dict[str, str]]]:
    return cast(list[tuple[str, dict[str, str]]], r.xrange(feed.key, min=start, max=end, count=count))
