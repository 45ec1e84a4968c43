# Overview: Server-sent event stream for order status updates.

from flask import Blueprint, Response, current_app, g, stream_with_context

from ..services import events_service
from ..services.events_service import broker
from ..decorators import optional_auth


events_bp = Blueprint("events", __name__, url_prefix="/api")


@events_bp.get("/events")
@optional_auth
def event_stream_route():
    """
    Long-lived text/event-stream.

    Anonymous clients receive broadcasts only; authenticated clients also
    receive events about their own orders.
    """
    user = g.get("current_user")
    sub = broker.subscribe(user_id=user.id if user else None)
    current_app.logger.info("Event stream %s opened (user=%s)", sub.id, sub.user_id)

    keepalive = current_app.config.get("EVENT_STREAM_KEEPALIVE", 30)
    response = Response(
        stream_with_context(events_service.stream(sub, keepalive)),
        mimetype="text/event-stream",
    )
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response
