from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


# Streams new-customer events to dashboards; inbound messages are ignored
@router.websocket("/ws/customers")
async def customer_events(websocket: WebSocket):
    hub = websocket.app.state.realtime_hub
    await hub.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(websocket)
