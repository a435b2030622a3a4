"""
Reconciler Plugin Base - Abstract interface for reconciler plugins.

Reconciler plugins own the reconciliation logic for one or more resource
types. They run their own continuous reconciliation loops against the
Kubernetes API and report status back to the managed resources.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple, Type

from apis import ManagedResource
from config import ControllerConfig, GitHubConfig
from events import Event, EventRecorder
from kube import KubeClient, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result from a reconciler's reconcile() call."""

    success: bool = False
    message: str = ""
    requeue_after: Optional[int] = None


class ReconcilerContext:
    """
    Context provided to reconciler plugins by the controller.

    Gives reconcilers access to the Kubernetes API, event recording,
    configuration, and the record of recent reconciliations.
    """

    def __init__(
        self,
        kube: KubeClient,
        recorder: EventRecorder,
        shutdown_event: asyncio.Event,
        config: Optional[ControllerConfig] = None,
        github_config: Optional[GitHubConfig] = None,
    ):
        self.kube = kube
        self.recorder = recorder
        self.shutdown_event = shutdown_event
        self.config = config or ControllerConfig()
        self.github_config = github_config or GitHubConfig()
        self._reconciliations: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._triggered: Set[Tuple[str, str]] = set()

    async def list_resources(
        self, resource_class: Type[ManagedResource]
    ) -> List[Dict[str, Any]]:
        """
        List all objects of a managed resource kind.

        Args:
            resource_class: The managed resource model class.

        Returns:
            List of raw resource dicts from the API server.
        """
        return await self.kube.list(*resource_class.resource_type())

    async def update_status(self, mg: ManagedResource) -> None:
        """
        Write a managed resource's status through the status subresource.

        A resource that no longer exists is ignored.
        """
        try:
            await self.kube.patch_status(
                *mg.resource_type(), mg.metadata.name, mg.status.to_dict()
            )
        except NotFoundError:
            logger.debug(f"{mg.kind}/{mg.metadata.name} gone before status update")

    async def update_metadata(self, mg: ManagedResource) -> None:
        """Write a managed resource's finalizers and annotations."""
        await self.kube.patch(
            *mg.resource_type(),
            mg.metadata.name,
            {
                "metadata": {
                    "finalizers": mg.metadata.finalizers,
                    "annotations": mg.metadata.annotations,
                }
            },
        )

    async def record_event(self, mg: ManagedResource, event: Event) -> None:
        """Record a Kubernetes event about a managed resource."""
        await self.recorder.record(mg.to_dict(), event)

    def record_reconciliation(
        self,
        kind: str,
        name: str,
        result: ReconcileResult,
        duration_seconds: Optional[float] = None,
        trigger_reason: Optional[str] = None,
    ) -> None:
        """
        Record the latest reconciliation attempt of a resource.

        Args:
            kind: The resource kind.
            name: The resource name.
            result: The ReconcileResult from reconciliation.
            duration_seconds: How long reconciliation took.
            trigger_reason: Why reconciliation was triggered.
        """
        self._reconciliations[(kind, name)] = {
            "kind": kind,
            "name": name,
            "success": result.success,
            "message": result.message,
            "requeue_after": result.requeue_after,
            "duration_seconds": duration_seconds,
            "trigger_reason": trigger_reason,
            "reconcile_time": datetime.now(timezone.utc).isoformat(),
        }

    def forget_reconciliation(self, kind: str, name: str) -> None:
        """Drop the record of a resource that no longer exists."""
        self._reconciliations.pop((kind, name), None)

    def get_reconciliation(self, kind: str, name: str) -> Optional[Dict[str, Any]]:
        """Get the latest reconciliation record of a resource."""
        return self._reconciliations.get((kind, name))

    def list_reconciliations(self, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        """List the latest reconciliation records, optionally for one kind."""
        return [
            record
            for (record_kind, _), record in sorted(self._reconciliations.items())
            if kind is None or record_kind == kind
        ]

    def request_reconcile(self, kind: str, name: str) -> None:
        """Ask for a resource to be reconciled on the next loop iteration."""
        self._triggered.add((kind, name))

    def consume_reconcile_request(self, kind: str, name: str) -> bool:
        """Return True, once, if a reconcile was requested for the resource."""
        if (kind, name) in self._triggered:
            self._triggered.discard((kind, name))
            return True
        return False


class ReconcilerPlugin(ABC):
    """
    Abstract base class for reconciler plugins.

    Reconciler plugins own the reconciliation logic for one or more
    resource types. They run their own continuous reconciliation loop,
    reading resources from the Kubernetes API and reporting status back.

    Reconcilers are discovered via Python entry points in the
    'provider_github.reconcilers' group.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this reconciler."""
        pass

    @property
    @abstractmethod
    def resource_types(self) -> List[str]:
        """Resource kinds this reconciler handles."""
        pass

    @abstractmethod
    async def start(self, ctx: ReconcilerContext) -> None:
        """
        Start the reconciliation loop.

        The reconciler should run its own loop until ctx.shutdown_event
        is set.

        Args:
            ctx: ReconcilerContext providing access to resources and status.
        """
        pass

    @abstractmethod
    async def reconcile(
        self, resource: Dict[str, Any], ctx: ReconcilerContext
    ) -> ReconcileResult:
        """
        Reconcile a single resource.

        Compare desired state against actual state and take action.

        Args:
            resource: The raw resource dict from the API server.
            ctx: ReconcilerContext for status updates and events.

        Returns:
            ReconcileResult indicating success/failure.
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Graceful shutdown. Clean up any resources."""
        pass
