"""
channel.py
----------

`ConversationChannel` over a browser WebSocket.

The browser owns the realtime connection to the model. The server tells it
when to connect or disconnect and which client events to forward, and pushes
slot updates for the sidebar.
"""

from typing import Optional

from fastapi import WebSocket

from .state import DisplayedQuestion


class WebSocketChannel:
    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def open(self):
        await self.websocket.send_json({"type": "transport.connect"})

    async def close(self):
        await self.websocket.send_json({"type": "transport.disconnect"})

    async def send(self, event: dict):
        await self.websocket.send_json({"type": "client_event", "event": event})

    async def send_slot(self, slot: Optional[DisplayedQuestion]):
        await self.websocket.send_json({
            "type": "slot",
            "question": slot.to_dict() if slot is not None else None,
        })
