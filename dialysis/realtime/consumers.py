import json

from channels.generic.websocket import AsyncWebsocketConsumer
from django.utils import timezone

from dialysis.services.notify import UPDATES_GROUP


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Ward dashboards listen here and reload when the schedule changes."""
    GROUP = UPDATES_GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "ts": timezone.now().isoformat()}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        if text_data and text_data.strip().lower() in ('ping', '"ping"'):
            await self.send(json.dumps({"type": "pong", "ts": timezone.now().isoformat()}))

    async def broadcast_refresh(self, event):
        # {"type": "broadcast.refresh", "version": int, "ts": "...", "keys": ["schedule:2024-06-01", ...]}
        await self.send(json.dumps(event))
