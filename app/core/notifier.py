import json
from typing import Collection, Dict, List, Tuple

from fastapi import WebSocket

from app.core.logger import logger


class ConnectionManager:
    """Fan-out of conversation events to the participants' open sockets."""

    def __init__(self):
        self.active: Dict[int, List[Tuple[int, WebSocket]]] = {}

    async def connect(self, conversation_id: int, user_id: int, websocket: WebSocket) -> None:

        self.active.setdefault(conversation_id, []).append((user_id, websocket))

    def disconnect(self, conversation_id: int, user_id: int, websocket: WebSocket) -> None:

        if conversation_id not in self.active:
            return

        self.active[conversation_id] = [
            (uid, ws) for (uid, ws) in self.active[conversation_id]
            if not (uid == user_id and ws == websocket)
        ]

        if not self.active[conversation_id]:
            del self.active[conversation_id]

    async def broadcast(self, conversation_id: int, event: dict, exclude: Collection[int] = ()) -> None:
        """Send ``event`` to every socket of the conversation except those of ``exclude`` users."""

        dead: List[Tuple[int, WebSocket]] = []

        for uid, ws in list(self.active.get(conversation_id, [])):
            if uid in exclude:
                continue
            try:
                await ws.send_text(json.dumps(event, default=str))
            except Exception as e:
                logger.warning(f"Dropping socket of user {uid} in conversation {conversation_id}: {e}")
                dead.append((uid, ws))

        for uid, ws in dead:
            self.disconnect(conversation_id, uid, ws)


manager = ConnectionManager()
