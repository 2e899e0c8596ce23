"""Server-sent-events framing for audit progress streams.

Each event is one ``data: <json>`` record terminated by a blank line.
"""

import json
import logging
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, Union

from site_audit.constants import SSE_DATA_PREFIX, SSE_RECORD_SEPARATOR
from site_audit.models import ProgressEvent

logger = logging.getLogger(__name__)


def sse_data(event: Union[ProgressEvent, dict]) -> str:
    """JSON body of one SSE record."""
    payload = event.to_dict() if isinstance(event, ProgressEvent) else event
    return json.dumps(payload, ensure_ascii=False)


def format_sse(event: Union[ProgressEvent, dict]) -> str:
    """Render one event as a complete SSE record."""
    return f"{SSE_DATA_PREFIX}{sse_data(event)}{SSE_RECORD_SEPARATOR}"


async def stream_sse(events: AsyncIterable[ProgressEvent]) -> AsyncIterator[dict]:
    """Adapt an async sequence of events to EventSourceResponse items."""
    async for event in events:
        yield {"data": sse_data(event)}


def parse_sse_lines(lines: Iterable[str]) -> Iterator[dict]:
    """Decode received SSE lines back into event payloads.

    Lines that are not ``data:`` records or carry invalid JSON are skipped.
    """
    prefix = SSE_DATA_PREFIX.strip()
    for line in lines:
        line = line.strip()
        if not line.startswith(prefix):
            continue
        data = line[len(prefix):].strip()
        try:
            yield json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed SSE record: {data[:80]!r}")
