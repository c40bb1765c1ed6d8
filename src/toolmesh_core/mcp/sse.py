"""Server-Sent-Events decoding for Streamable-HTTP responses."""

from dataclasses import dataclass


@dataclass
class SSEEvent:
    """One dispatched SSE event."""

    data: str
    event: str | None = None
    id: str | None = None


def parse_sse(text: str) -> list[SSEEvent]:
    """Parse an SSE body into events.

    ``event:``, ``data:`` and ``id:`` lines fill the current event; several
    ``data:`` lines are joined with newlines. A blank line dispatches the
    event if it has data. Data left over after the last line is dispatched
    too, so an unterminated stream still yields its final event.

    Args:
        text: Full response body

    Returns:
        Events in stream order
    """
    events: list[SSEEvent] = []
    event_type: str | None = None
    event_id: str | None = None
    data: str | None = None

    for raw_line in text.split("\n"):
        line = raw_line.removesuffix("\r")
        if line.startswith("event:"):
            event_type = line[6:].strip()
        elif line.startswith("data:"):
            value = line[5:].strip()
            data = f"{data}\n{value}" if data else value
        elif line.startswith("id:"):
            event_id = line[3:].strip()
        elif line == "" and data:
            events.append(SSEEvent(data=data, event=event_type, id=event_id))
            event_type = event_id = data = None

    if data:
        events.append(SSEEvent(data=data, event=event_type, id=event_id))

    return events
