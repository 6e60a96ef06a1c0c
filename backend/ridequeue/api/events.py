"""
Websocket stream of notification events.

Clients name the groups they want in the query string, e.g.
/api/v1/events/ws?groups=role:driver or
/api/v1/events/ws?groups=customer:<id>,payment:<id>.
"""
import logging
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def events_websocket(websocket: WebSocket, groups: str = Query("")):
    group_list = [group.strip() for group in groups.split(",") if group.strip()]
    if not group_list:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    broadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    queue = broadcaster.subscribe(group_list)
    logger.info(f"Websocket subscribed to {', '.join(group_list)}")

    try:
        while True:
            message = await queue.get()
            await websocket.send_json(message)
    except WebSocketDisconnect:
        logger.info(f"Websocket for {', '.join(group_list)} disconnected")
    finally:
        broadcaster.unsubscribe(queue)
