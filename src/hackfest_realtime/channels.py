"""
In-process broadcast channels.

A `MemoryBroadcastHub` stands in for the browser's same-origin broadcast
primitive: every `MemoryBroadcastChannel` attached under the same name receives
the messages posted by the others, synchronously and in post order.
"""
import copy
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from .protocols import ChannelListener


class MemoryBroadcastHub:
    def __init__(self):
        self._channels: Dict[str, List["MemoryBroadcastChannel"]] = defaultdict(list)

    def channel(self, name: str) -> "MemoryBroadcastChannel":
        return MemoryBroadcastChannel(self, name)

    def _join(self, channel: "MemoryBroadcastChannel"):
        if channel not in self._channels[channel.name]:
            self._channels[channel.name].append(channel)

    def _leave(self, channel: "MemoryBroadcastChannel"):
        members = self._channels.get(channel.name)
        if members and channel in members:
            members.remove(channel)
            if not members:
                del self._channels[channel.name]

    def _fan_out(self, sender: "MemoryBroadcastChannel", message: Dict[str, Any]):
        for member in list(self._channels.get(sender.name, ())):
            if member is sender:
                continue
            # Each context gets its own copy, as it would from a real transport.
            member._receive(copy.deepcopy(message))

    def member_count(self, name: str) -> int:
        return len(self._channels.get(name, ()))


class MemoryBroadcastChannel:
    """One context's handle on a named hub topic."""

    def __init__(self, hub: MemoryBroadcastHub, name: str):
        self.name = name
        self._hub = hub
        self._listener: Optional[ChannelListener] = None

    @property
    def attached(self) -> bool:
        return self._listener is not None

    async def attach(self, listener: ChannelListener) -> None:
        self._listener = listener
        self._hub._join(self)

    async def detach(self) -> None:
        self._hub._leave(self)
        self._listener = None

    def post(self, message: Dict[str, Any]) -> None:
        if not self.attached:
            logging.debug(f"Channel {self.name} is detached, dropping outgoing message")
            return
        self._hub._fan_out(self, message)

    def _receive(self, message: Dict[str, Any]):
        listener = self._listener
        if listener is None:
            return
        try:
            listener(message)
        except Exception as e:
            # One broken context must not stop delivery to the rest.
            logging.error(f"Channel {self.name} listener failed: {e}")
