"""
Live-reload endpoints.

  GET /__sitepipe/events     Server-Sent Events stream of reload signals
  GET /__sitepipe/reload.js  The browser client that consumes it

Wire format::

    event: reload:css
    id: 47
    data: {"v":1,"ts":1739648400.123,"seq":47,"type":"reload:css","key":"styles.css","data":{}}

On reconnect the browser sends ``Last-Event-Id`` automatically, and
missed events are replayed from the bus's ring buffer.
"""

from __future__ import annotations

import json
from pathlib import Path

from flask import Blueprint, Response, current_app, request, send_from_directory

events_bp = Blueprint("events", __name__, url_prefix="/__sitepipe")

_STATIC_DIR = Path(__file__).parent / "static"


@events_bp.route("/events")
def event_stream():  # type: ignore[no-untyped-def]
    """SSE endpoint — streams reload signals to the browser.

    Query params:
        since (int): Resume from this sequence number. Overridden by
            ``Last-Event-Id`` when present.
    """
    since = request.args.get("since", 0, type=int)

    last_event_id = request.headers.get("Last-Event-Id")
    if last_event_id is not None:
        try:
            since = max(since, int(last_event_id))
        except (ValueError, TypeError):
            pass

    bus = current_app.config["EVENT_BUS"]
    heartbeat = current_app.config["SSE_HEARTBEAT_S"]

    def generate():  # type: ignore[no-untyped-def]
        for event in bus.subscribe(since=since, heartbeat_interval=heartbeat):
            yield (
                f"event: {event['type']}\n"
                f"id: {event['seq']}\n"
                f"data: {json.dumps(event, default=str)}\n\n"
            )

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
    )


@events_bp.route("/reload.js")
def reload_client():  # type: ignore[no-untyped-def]
    return send_from_directory(_STATIC_DIR, "reload.js", mimetype="text/javascript", max_age=0)
