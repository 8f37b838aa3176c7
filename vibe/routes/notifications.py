"""
Vibe real-time notifications (SSE)
One stream per connected client; likes and comments on the user's content
are pushed as they happen.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import AsyncGenerator, Optional
import asyncio
import json

from ..auth import get_principal, Principal, user_from_token
from ..config import get_settings
from ..database import get_db
from ..models.user import User
from ..responses import success
from ..services.notifications import Channel, notification_hub

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


async def notification_stream(request: Request, channel: Channel, keepalive: float) -> AsyncGenerator:
    """Generator for a user's SSE stream"""
    try:
        payload = {"user_id": channel.user_id}
        yield f"event: connected\ndata: {json.dumps(payload)}\n\n"

        while True:
            if await request.is_disconnected():
                break

            try:
                event = await asyncio.wait_for(channel.queue.get(), timeout=keepalive)
                yield event.to_sse()
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"

    finally:
        notification_hub.disconnect(channel)


def stream_user(token: Optional[str] = None, db: Session = Depends(get_db)) -> User:
    """User behind the `?token=` query parameter, or 401."""
    user = user_from_token(token, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing token",
        )
    return user


@router.get("/stream")
async def stream(request: Request, user: User = Depends(stream_user)):
    """
    SSE endpoint for the current user's notifications.

    EventSource cannot set headers, so the access token travels as a query
    parameter:
    ```
    const source = new EventSource(`/api/notifications/stream?token=${accessToken}`);
    source.addEventListener('notification', (e) => console.log(JSON.parse(e.data)));
    ```
    """
    channel = notification_hub.connect(user.id)
    return StreamingResponse(
        notification_stream(request, channel, get_settings().notification_keepalive_seconds),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )


@router.get("/status")
def notifications_status(principal: Principal = Depends(get_principal)):
    """Connection counts, and whether the caller has an open stream"""
    return success({
        "online_users": notification_hub.online_count,
        "open_streams": notification_hub.channel_count,
        "connected": notification_hub.is_online(principal.id) is not None,
    })
