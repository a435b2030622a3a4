"""
Event Recording - Kubernetes Events for managed resources.

Records Normal and Warning events against the managed resource, similar to
the event recorder of a Kubernetes controller.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from kube import KubeClient

logger = logging.getLogger(__name__)

REPORTING_COMPONENT = "provider-github"


class EventType(Enum):
    """Types of Kubernetes events."""

    NORMAL = "Normal"
    WARNING = "Warning"


@dataclass
class Event:
    """An event about a managed resource."""

    event_type: EventType
    reason: str
    message: str

    @classmethod
    def normal(cls, reason: str, message: str = "") -> "Event":
        return cls(EventType.NORMAL, reason, message)

    @classmethod
    def warning(cls, reason: str, message: str) -> "Event":
        return cls(EventType.WARNING, reason, message)

    def to_kube_event(self, obj: Dict[str, Any], namespace: str) -> Dict[str, Any]:
        """
        Build a core/v1 Event about the given object.

        Args:
            obj: The involved object (api dict with apiVersion, kind, metadata).
            namespace: Namespace to create the event in. Cluster-scoped
                objects have no namespace of their own.

        Returns:
            The Event body for the Kubernetes API.
        """
        metadata = obj.get("metadata", {})
        name = metadata.get("name", "unknown")
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return {
            "apiVersion": "v1",
            "kind": "Event",
            "metadata": {
                "name": f"{name}.{uuid.uuid4().hex[:16]}",
                "namespace": namespace,
            },
            "involvedObject": {
                "apiVersion": obj.get("apiVersion"),
                "kind": obj.get("kind"),
                "name": name,
                "uid": metadata.get("uid"),
                "resourceVersion": metadata.get("resourceVersion"),
            },
            "type": self.event_type.value,
            "reason": self.reason,
            "message": self.message,
            "source": {"component": REPORTING_COMPONENT},
            "firstTimestamp": timestamp,
            "lastTimestamp": timestamp,
            "count": 1,
        }


class EventRecorder:
    """
    Records events through the Kubernetes API.

    Failures to record are logged and never raised.
    """

    def __init__(self, kube: KubeClient, namespace: str = "default"):
        self._kube = kube
        self._namespace = namespace

    async def record(self, obj: Dict[str, Any], event: Event) -> None:
        """
        Record an event about an object.

        Args:
            obj: The involved object as an api dict.
            event: The event to record.
        """
        body = event.to_kube_event(obj, self._namespace)
        log = logger.warning if event.event_type == EventType.WARNING else logger.info
        log(
            f"{obj.get('kind')}/{body['involvedObject']['name']}: "
            f"{event.reason} {event.message}".rstrip()
        )
        try:
            await self._kube.create_event(self._namespace, body)
        except Exception as e:
            logger.warning(f"Could not record event {event.reason}: {e}")
