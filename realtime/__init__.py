"""Real-time delivery of session events."""
from .router import DELIVERY_POLICY, BroadcastRouter, Connection, Delivery, QueueConnection, frame

__all__ = [
    "BroadcastRouter",
    "Connection",
    "DELIVERY_POLICY",
    "Delivery",
    "QueueConnection",
    "frame",
]
