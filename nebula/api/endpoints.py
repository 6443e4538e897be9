"""
FastAPI Endpoints for Visitor Analytics

This module defines the REST and WebSocket endpoints with minimal logic.
Endpoints only handle:
- Request validation (Pydantic models)
- Rate limiting
- Error handling and HTTP responses
- Delegating to service layer

Consumers:
- The public visitor widget: POST /visits, GET /counter, WS /ws/counter
- The admin dashboard: GET /analytics, WS /ws/analytics
"""

import asyncio
import json
import logging

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from nebula.api.schemas import (
    AnalyticsResponse,
    CounterResponse,
    VisitRequest,
    VisitResponse,
)
from nebula.core.exceptions import CounterWriteFailure, InvalidWindowError, SubscriptionFailure
from nebula.core.formatting import ordinal, visitor_message
from nebula.core.rate_limit import RATE_LIMITS, get_client_ip, limiter
from nebula.core.service_manager import (
    get_counter_store,
    get_session_store,
    get_stats_service,
    get_visit_tracker,
)
from nebula.core.setting import settings
from nebula.core.validators import sanitize_label, sanitize_session_id, validate_window_days
from nebula.services.counter_store import CounterStore
from nebula.services.refresh_scheduler import RefreshScheduler
from nebula.services.session_gate import MemorySessionStore
from nebula.services.stats_service import StatsService
from nebula.services.visit_tracker import VisitTracker

logger = logging.getLogger(__name__)

router = APIRouter()

# WebSocket close code for an internal error (RFC 6455)
WS_INTERNAL_ERROR = 1011


def counter_payload(count: int) -> dict:
    return {"count": count, "ordinal": ordinal(count), "message": visitor_message(count)}


async def close_after_error(websocket: WebSocket) -> None:
    try:
        await websocket.close(code=WS_INTERNAL_ERROR)
    except (RuntimeError, OSError, WebSocketDisconnect) as e:
        # The peer is already gone
        logger.debug(f"WebSocket already closed: {e}")


@router.post(
    "/visits",
    response_model=VisitResponse,
    summary="Record a visit",
    description="Counts the calling browser tab once and logs the visit for analytics"
)
@limiter.limit(RATE_LIMITS["visit"])
async def record_visit(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    body: VisitRequest,
    tracker: VisitTracker = Depends(get_visit_tracker),
    session_store: MemorySessionStore = Depends(get_session_store),
) -> VisitResponse:
    """
    Record a visit for a browsing session.

    Repeated calls with the same session id return the current count without
    counting again.

    Raises:
        HTTPException 422: If the session id is malformed
        HTTPException 503: If the counter could not be written (the session
            stays uncounted, so the client may retry on its next load)
        HTTPException 429: If rate limit exceeded
    """
    session_id = sanitize_session_id(body.session_id)
    if not session_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid session id. Use 8-64 characters from [0-9a-zA-Z_-]."
        )

    try:
        outcome = await tracker.record_visit(
            session_store.state_for(session_id),
            client_ip=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
            device_type=sanitize_label(body.device_type),
            browser=sanitize_label(body.browser),
        )
    except CounterWriteFailure as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )

    return VisitResponse(counted=outcome.counted, **counter_payload(outcome.count))


@router.get(
    "/counter",
    response_model=CounterResponse,
    summary="Get the visitor count",
)
@limiter.limit(RATE_LIMITS["counter"])
async def get_counter(
    request: Request,
    counter_store: CounterStore = Depends(get_counter_store),
) -> CounterResponse:
    return CounterResponse(**counter_payload(await counter_store.get()))


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Get visitor analytics",
    description="Aggregates the visit log into trends, geography, devices, and activity"
)
@limiter.limit(RATE_LIMITS["analytics"])
async def get_analytics(
    request: Request,
    days: int = Query(settings.DEFAULT_WINDOW_DAYS, description="Trend window in days"),
    stats_service: StatsService = Depends(get_stats_service),
) -> AnalyticsResponse:
    """
    Raises:
        HTTPException 400: If days is not one of the offered windows
    """
    try:
        validate_window_days(days, settings.ANALYTICS_WINDOWS)
    except InvalidWindowError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    view = await stats_service.get_analytics(days)
    return AnalyticsResponse(**view)


@router.websocket("/ws/counter")
async def counter_stream(
    websocket: WebSocket,
    counter_store: CounterStore = Depends(get_counter_store),
):
    """
    Live visitor count.

    Sends {"count": n} on connect (once the counter exists) and after every
    increment. The subscription is torn down when the client disconnects.
    If pushing fails, the socket is closed with 1011 so the widget can hide
    itself instead of showing a stale number.
    """
    await websocket.accept()
    updates: asyncio.Queue = asyncio.Queue()

    def subscription_failed(failure: SubscriptionFailure):
        # Wake the sender so it ends with the failure
        updates.put_nowait(failure)

    subscription = counter_store.subscribe(updates.put_nowait, on_error=subscription_failed)

    async def forward_updates():
        while True:
            update = await updates.get()
            if isinstance(update, SubscriptionFailure):
                raise update
            await websocket.send_json({"count": update})

    async def drain_client():
        # Client messages are ignored; receiving detects the disconnect
        while True:
            await websocket.receive_text()

    tasks = set()
    try:
        if await counter_store.exists():
            await websocket.send_json({"count": await counter_store.get()})

        sender = asyncio.create_task(forward_updates())
        receiver = asyncio.create_task(drain_client())
        tasks = {sender, receiver}
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

        if receiver in done:
            # Re-raises WebSocketDisconnect for a normal client close
            receiver.result()
        if sender in done:
            error = sender.exception()
            logger.error(f"Live counter push failed: {error}", exc_info=error)
            await close_after_error(websocket)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Live counter stream failed: {e}", exc_info=True)
        await close_after_error(websocket)
    finally:
        subscription.unsubscribe()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


@router.websocket("/ws/analytics")
async def analytics_stream(
    websocket: WebSocket,
    days: int = settings.DEFAULT_WINDOW_DAYS,
    stats_service: StatsService = Depends(get_stats_service),
):
    """
    Dashboard feed with auto/manual refresh.

    Server messages:
    - {"type": "state", "state", "mode", "countdown", "fetching", "window_days"}
    - {"type": "analytics", "data": AnalyticsResponse}
    - {"type": "error", "detail": str}

    Client messages:
    - {"action": "toggle"}: switch auto/manual refresh
    - {"action": "refresh"}: refresh now
    - {"action": "window", "days": 7 | 30 | 90}: change window and refresh
    """
    await websocket.accept()
    window = {"days": settings.DEFAULT_WINDOW_DAYS}
    try:
        window["days"] = validate_window_days(days, settings.ANALYTICS_WINDOWS)
    except InvalidWindowError as e:
        await websocket.send_json({"type": "error", "detail": str(e)})

    async def fetch():
        return await stats_service.get_analytics(window["days"])

    async def send_view(view: dict):
        data = AnalyticsResponse(**view).model_dump(mode="json")
        await websocket.send_json({"type": "analytics", "data": data})

    async def send_state(state: dict):
        await websocket.send_json({"type": "state", "window_days": window["days"], **state})

    scheduler = RefreshScheduler(
        fetch,
        interval=settings.REFRESH_INTERVAL_SECONDS,
        on_update=send_view,
        on_state=send_state,
    )

    try:
        await scheduler.refresh()
        scheduler.start()
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await websocket.send_json({"type": "error", "detail": "Messages must be JSON"})
                continue

            action = message.get("action") if isinstance(message, dict) else None
            if action == "toggle":
                await scheduler.toggle()
            elif action == "refresh":
                await scheduler.refresh()
            elif action == "window":
                try:
                    window["days"] = validate_window_days(message.get("days"), settings.ANALYTICS_WINDOWS)
                except InvalidWindowError as e:
                    await websocket.send_json({"type": "error", "detail": str(e)})
                    continue
                await scheduler.refresh()
            else:
                await websocket.send_json({"type": "error", "detail": f"Unknown action: {action!r}"})
    except WebSocketDisconnect:
        pass
    finally:
        await scheduler.stop()
