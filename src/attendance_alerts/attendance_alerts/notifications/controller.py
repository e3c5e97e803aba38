from __future__ import annotations

import json
import logging
import queue

from flask import Flask, Response, request

from ..common.serializers import to_jsonable

logger = logging.getLogger(__name__)

HEARTBEAT_SECONDS = 15.0
STREAM_QUEUE_SIZE = 100


def _sse(event: str, payload) -> str:
    return f"event: {event}\ndata: {json.dumps(to_jsonable(payload))}\n\n"


def register(app: Flask, container) -> None:
    @app.route("/api/realtime/stream", methods=["GET"], endpoint="api_realtime_stream")
    def api_realtime_stream():
        """Server-sent events: dashboard broadcasts, plus targeted pushes when
        ``recipient_id`` is given."""

        recipient_id = request.args.get("recipient_id") or None
        inbox: "queue.Queue[tuple[str, dict]]" = queue.Queue(maxsize=STREAM_QUEUE_SIZE)

        def listener(event, payload):
            # raising marks this subscriber as failed for targeted pushes
            inbox.put_nowait((event, dict(payload)))

        sub = container.realtime.subscribe(listener, recipient_id=recipient_id)
        logger.info("Realtime stream opened (recipient=%s)", recipient_id or "-")

        def stream():
            try:
                yield _sse("connected", {"recipient_id": recipient_id})
                while True:
                    try:
                        event, payload = inbox.get(timeout=HEARTBEAT_SECONDS)
                    except queue.Empty:
                        yield ": keep-alive\n\n"
                        continue
                    yield _sse(event, payload)
            finally:
                sub.close()
                logger.info("Realtime stream closed (recipient=%s)", recipient_id or "-")

        return Response(
            stream(),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )
