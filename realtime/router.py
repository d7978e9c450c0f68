"""Fan-out of session events to connected parties."""
from __future__ import annotations

import asyncio
import logging
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Delivery(str, Enum):
    ALL = "all"
    OTHERS = "others"


DELIVERY_POLICY: Dict[str, Delivery] = {
    "session-created": Delivery.ALL,
    "sessions-list": Delivery.ALL,
    "timer-update": Delivery.ALL,
    "execution-update": Delivery.ALL,
    "paste-detected": Delivery.ALL,
    "candidate-test-results": Delivery.ALL,
    "code-update": Delivery.OTHERS,
    "language-update": Delivery.OTHERS,
}


class Connection(Protocol):
    connection_id: str

    def send(self, message: Dict[str, Any]) -> None:
        ...


class QueueConnection:
    """Connection whose outbound messages wait in a queue for a writer task."""

    def __init__(self, connection_id: Optional[str] = None) -> None:
        self.connection_id = connection_id or uuid.uuid4().hex
        self.outbox: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()

    def send(self, message: Dict[str, Any]) -> None:
        self.outbox.put_nowait(message)

    def __repr__(self) -> str:
        return f"QueueConnection({self.connection_id})"


def frame(event: str, payload: Any) -> Dict[str, Any]:  # Wire envelope for an outbound event
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True)
    elif isinstance(payload, list):
        payload = [
            item.model_dump(mode="json", by_alias=True) if isinstance(item, BaseModel) else item
            for item in payload
        ]
    return {"event": event, "data": payload}


class BroadcastRouter:
    """Registry of live connections with per-event delivery policy."""

    def __init__(self, policy: Optional[Dict[str, Delivery]] = None) -> None:
        self._policy = dict(DELIVERY_POLICY if policy is None else policy)
        self._connections: Dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def register(self, connection: Connection) -> None:
        self._connections[connection.connection_id] = connection

    def unregister(self, connection: Connection) -> None:
        self._connections.pop(connection.connection_id, None)

    def policy(self, event: str) -> Delivery:
        return self._policy.get(event, Delivery.ALL)

    def reply(self, connection: Connection, event: str, payload: Any = None) -> None:
        """Deliver ``event`` to ``connection`` only."""

        self._deliver(connection, frame(event, payload))

    def publish(self, event: str, payload: Any, origin: Optional[Connection] = None) -> int:
        """Deliver ``event`` per its policy and return the number of recipients."""

        exclude = origin.connection_id if origin is not None and self.policy(event) is Delivery.OTHERS else None
        message = frame(event, payload)
        delivered = 0
        for connection in self._recipients(exclude):
            if self._deliver(connection, message):
                delivered += 1
        return delivered

    def _recipients(self, exclude: Optional[str]) -> List[Connection]:
        return [conn for conn_id, conn in list(self._connections.items()) if conn_id != exclude]

    def _deliver(self, connection: Connection, message: Dict[str, Any]) -> bool:
        try:
            connection.send(message)
        except Exception:  # noqa: BLE001
            logger.exception("Dropping connection %s after failed delivery", connection.connection_id)
            self.unregister(connection)
            return False
        return True


__all__ = [
    "BroadcastRouter",
    "Connection",
    "DELIVERY_POLICY",
    "Delivery",
    "QueueConnection",
    "frame",
]
