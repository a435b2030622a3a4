"""
Managed Reconciler - Generic reconciliation of managed resources.

Drives an ExternalConnecter/ExternalClient pair through the observe, then
create, update or delete cycle. The loop is similar to a Kubernetes
controller: list resources, reconcile those that are due, requeue with
exponential backoff on failure.
"""

import asyncio
import logging
import random
import time
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import ValidationError

from apis import (
    FINALIZER,
    DeletionPolicy,
    ManagedResource,
    available,
    creating,
    deleting,
    reconcile_error,
    reconcile_success,
)
from events import Event
from plugins.external.base import ExternalConnecter
from plugins.reconcilers.base import (
    ReconcilerContext,
    ReconcilerPlugin,
    ReconcileResult,
)
from validation import validate_resource_spec

logger = logging.getLogger(__name__)

# Event reasons
REASON_CANNOT_INITIALIZE = "CannotInitializeManagedResource"
REASON_CANNOT_CONNECT = "CannotConnectToProvider"
REASON_CANNOT_OBSERVE = "CannotObserveExternalResource"
REASON_CANNOT_CREATE = "CannotCreateExternalResource"
REASON_CANNOT_UPDATE = "CannotUpdateExternalResource"
REASON_CANNOT_DELETE = "CannotDeleteExternalResource"
REASON_CREATED = "CreatedExternalResource"
REASON_UPDATED = "UpdatedExternalResource"
REASON_DELETED = "DeletedExternalResource"

# Error prefixes
ERR_RECONCILE_INVALID = "invalid managed resource"
ERR_RECONCILE_INITIALIZE = "cannot initialize managed resource"
ERR_RECONCILE_CONNECT = "connect failed"
ERR_RECONCILE_OBSERVE = "observe failed"
ERR_RECONCILE_CREATE = "create failed"
ERR_RECONCILE_UPDATE = "update failed"
ERR_RECONCILE_DELETE = "delete failed"


def compute_backoff_delay(
    failures: int,
    base_delay: float,
    max_delay: float,
    jitter_factor: float = 0.0,
) -> float:
    """
    Exponential backoff delay after a number of consecutive failures.

    The delay is base_delay * 2**failures (exponent capped at 10), is capped
    at max_delay, and is spread by ±jitter_factor.
    """
    delay = min(base_delay * (2 ** min(max(failures, 0), 10)), max_delay)
    if jitter_factor:
        delay += delay * jitter_factor * random.uniform(-1, 1)
    return max(delay, 0.0)


@dataclass
class _Schedule:
    """Scheduling state for one resource."""

    next_due: float
    generation: int
    deleting: bool = False
    failures: int = 0


class ManagedReconciler(ReconcilerPlugin):
    """
    Reconciler plugin for one managed resource kind.

    Subclasses set ``resource_class`` and build the kind's connector in
    ``new_connector``.
    """

    resource_class: Type[ManagedResource] = ManagedResource

    def __init__(self):
        self._schedule: Dict[str, _Schedule] = {}
        self._connector: Optional[ExternalConnecter] = None
        self._semaphore: Optional[asyncio.Semaphore] = None

    @property
    def resource_types(self) -> List[str]:
        return [self.resource_class.KIND]

    @abstractmethod
    def new_connector(self, ctx: ReconcilerContext) -> ExternalConnecter:
        """Build the connector that produces external clients."""
        pass

    def _get_connector(self, ctx: ReconcilerContext) -> ExternalConnecter:
        if self._connector is None:
            self._connector = self.new_connector(ctx)
        return self._connector

    # Loop

    async def start(self, ctx: ReconcilerContext) -> None:
        """Run the reconciliation loop until shutdown."""
        self._semaphore = asyncio.Semaphore(ctx.config.max_concurrent_reconciles)
        logger.info(f"Starting {self.name} reconciler")

        while not ctx.shutdown_event.is_set():
            try:
                await self.reconcile_due(ctx)
            except Exception as e:
                logger.error(
                    f"Error in {self.name} reconciliation loop: {e}", exc_info=True
                )

            try:
                await asyncio.wait_for(
                    ctx.shutdown_event.wait(), timeout=ctx.config.resync_interval
                )
            except asyncio.TimeoutError:
                pass

    async def stop(self) -> None:
        logger.info(f"Stopping {self.name} reconciler")
        self._schedule.clear()

    async def reconcile_due(self, ctx: ReconcilerContext) -> int:
        """
        List resources and reconcile those that are due.

        Returns:
            Number of resources reconciled.
        """
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(ctx.config.max_concurrent_reconciles)

        resources = await ctx.list_resources(self.resource_class)
        self._forget_missing(resources, ctx)

        due = [r for r in resources if self._is_due(r, ctx)]
        if due:
            logger.info(
                f"Found {len(due)} {self.resource_class.KIND} resources to reconcile"
            )
            await asyncio.gather(
                *[self._reconcile_with_limit(r, ctx) for r in due],
                return_exceptions=True,
            )
        return len(due)

    def _is_due(self, resource: Dict[str, Any], ctx: ReconcilerContext) -> bool:
        metadata = resource.get("metadata", {})
        entry = self._schedule.get(metadata.get("uid", ""))
        name = metadata.get("name", "")
        if ctx.consume_reconcile_request(self.resource_class.KIND, name):
            return True
        if entry is None:
            return True
        if metadata.get("generation", 0) != entry.generation:
            return True
        if metadata.get("deletionTimestamp") and not entry.deleting:
            return True
        return time.monotonic() >= entry.next_due

    def _forget_missing(
        self, resources: List[Dict[str, Any]], ctx: ReconcilerContext
    ) -> None:
        present = {r.get("metadata", {}).get("uid", "") for r in resources}
        for uid in list(self._schedule):
            if uid not in present:
                del self._schedule[uid]
        names = {r.get("metadata", {}).get("name", "") for r in resources}
        for record in ctx.list_reconciliations(self.resource_class.KIND):
            if record["name"] not in names:
                ctx.forget_reconciliation(self.resource_class.KIND, record["name"])

    def _determine_trigger_reason(self, resource: Dict[str, Any]) -> str:
        """Determine why this reconciliation was triggered."""
        metadata = resource.get("metadata", {})
        entry = self._schedule.get(metadata.get("uid", ""))
        if metadata.get("deletionTimestamp"):
            return "deletion"
        elif entry is None:
            return "initial"
        elif metadata.get("generation", 0) != entry.generation:
            return "spec_change"
        elif entry.failures:
            return "retry"
        else:
            # Scheduled re-observation (drift detection window)
            return "scheduled"

    def _schedule_next(
        self, resource: Dict[str, Any], result: ReconcileResult, ctx: ReconcilerContext
    ) -> None:
        metadata = resource.get("metadata", {})
        uid = metadata.get("uid", "")
        entry = self._schedule.get(uid) or _Schedule(next_due=0.0, generation=0)
        entry.generation = metadata.get("generation", 0)
        entry.deleting = bool(metadata.get("deletionTimestamp"))

        cfg = ctx.config
        if result.success:
            entry.failures = 0
            delay = (
                result.requeue_after
                if result.requeue_after is not None
                else cfg.poll_interval
            )
        else:
            entry.failures += 1
            delay = compute_backoff_delay(
                entry.failures,
                cfg.backoff_base_delay,
                cfg.backoff_max_delay,
                cfg.backoff_jitter_factor,
            )
        entry.next_due = time.monotonic() + delay
        self._schedule[uid] = entry

    async def _reconcile_with_limit(
        self, resource: Dict[str, Any], ctx: ReconcilerContext
    ) -> None:
        async with self._semaphore:
            name = resource.get("metadata", {}).get("name", "")
            start_time = time.monotonic()
            trigger_reason = self._determine_trigger_reason(resource)
            try:
                result = await self.reconcile(resource, ctx)
            except Exception as e:
                logger.error(
                    f"Error reconciling {self.resource_class.KIND}/{name}: {e}",
                    exc_info=True,
                )
                result = ReconcileResult(
                    success=False, message=f"Reconciliation error: {e}"
                )

            self._schedule_next(resource, result, ctx)
            ctx.record_reconciliation(
                self.resource_class.KIND,
                name,
                result,
                duration_seconds=time.monotonic() - start_time,
                trigger_reason=trigger_reason,
            )

    # Reconcile

    async def reconcile(
        self, resource: Dict[str, Any], ctx: ReconcilerContext
    ) -> ReconcileResult:
        """
        Reconcile a single managed resource.

        Phases: Validate -> Initialize -> Connect -> Observe ->
        Delete, Create or Update.
        """
        kind = self.resource_class.KIND
        name = resource.get("metadata", {}).get("name", "")

        is_valid, error = validate_resource_spec(kind, resource.get("spec", {}))
        try:
            mg = self.resource_class.model_validate(resource)
        except ValidationError as e:
            is_valid, error = False, error or str(e)
            mg = None
        if not is_valid:
            return await self._invalid(resource, ctx, error)

        if mg.is_deleting() and mg.get_deletion_policy() == DeletionPolicy.ORPHAN:
            logger.info(f"Orphaning external resource of {kind}/{name}")
            await self._remove_finalizer(mg, ctx)
            return ReconcileResult(success=True, message="External resource orphaned")

        if mg.is_deleting():
            # Observe needs a name even if initialization never ran.
            if not mg.get_external_name():
                mg.set_external_name(mg.metadata.name)
        else:
            try:
                await self._initialize(mg, ctx)
            except Exception as e:
                return await self._fail(
                    mg, ctx, REASON_CANNOT_INITIALIZE, ERR_RECONCILE_INITIALIZE, e
                )

        try:
            external = await self._get_connector(ctx).connect(mg)
        except Exception as e:
            return await self._fail(
                mg, ctx, REASON_CANNOT_CONNECT, ERR_RECONCILE_CONNECT, e
            )

        try:
            observation = await external.observe(mg)
        except Exception as e:
            return await self._fail(
                mg, ctx, REASON_CANNOT_OBSERVE, ERR_RECONCILE_OBSERVE, e
            )

        if mg.is_deleting():
            if not observation.resource_exists:
                await self._remove_finalizer(mg, ctx)
                logger.info(f"External resource of {kind}/{name} deleted")
                return ReconcileResult(
                    success=True, message="External resource deleted"
                )

            try:
                await external.delete(mg)
            except Exception as e:
                return await self._fail(
                    mg, ctx, REASON_CANNOT_DELETE, ERR_RECONCILE_DELETE, e
                )
            mg.set_conditions(deleting(), reconcile_success())
            await ctx.update_status(mg)
            await ctx.record_event(mg, Event.normal(REASON_DELETED))
            # Requeue to confirm the deletion.
            return ReconcileResult(
                success=True, message="Deleted external resource", requeue_after=0
            )

        if not observation.resource_exists:
            external_name = mg.get_external_name()
            try:
                await external.create(mg)
            except Exception as e:
                return await self._fail(
                    mg, ctx, REASON_CANNOT_CREATE, ERR_RECONCILE_CREATE, e
                )
            if mg.get_external_name() != external_name:
                await ctx.update_metadata(mg)
            mg.set_conditions(creating(), reconcile_success())
            await ctx.update_status(mg)
            await ctx.record_event(mg, Event.normal(REASON_CREATED))
            return ReconcileResult(
                success=True, message="Created external resource", requeue_after=0
            )

        if not observation.resource_up_to_date:
            try:
                await external.update(mg)
            except Exception as e:
                return await self._fail(
                    mg, ctx, REASON_CANNOT_UPDATE, ERR_RECONCILE_UPDATE, e
                )
            mg.set_conditions(available(), reconcile_success())
            await ctx.update_status(mg)
            await ctx.record_event(mg, Event.normal(REASON_UPDATED, observation.diff))
            return ReconcileResult(
                success=True, message="Updated external resource", requeue_after=0
            )

        mg.set_conditions(available(), reconcile_success())
        await ctx.update_status(mg)
        logger.debug(f"{kind}/{name} is up to date")
        return ReconcileResult(success=True, message="External resource is up to date")

    async def _initialize(self, mg: ManagedResource, ctx: ReconcilerContext) -> None:
        """Add the finalizer and default the external name."""
        changed = False
        if FINALIZER not in mg.metadata.finalizers:
            mg.metadata.finalizers.append(FINALIZER)
            changed = True
        if not mg.get_external_name():
            mg.set_external_name(mg.metadata.name)
            changed = True
        if changed:
            await ctx.update_metadata(mg)

    async def _remove_finalizer(
        self, mg: ManagedResource, ctx: ReconcilerContext
    ) -> None:
        if FINALIZER in mg.metadata.finalizers:
            mg.metadata.finalizers.remove(FINALIZER)
            await ctx.update_metadata(mg)

    async def _fail(
        self,
        mg: ManagedResource,
        ctx: ReconcilerContext,
        reason: str,
        prefix: str,
        err: Exception,
    ) -> ReconcileResult:
        """Report a failed phase in conditions, events and the result."""
        message = f"{prefix}: {err}"
        logger.error(f"Failed to reconcile {mg.kind}/{mg.metadata.name}: {message}")
        mg.set_conditions(reconcile_error(message))
        await ctx.record_event(mg, Event.warning(reason, message))
        try:
            await ctx.update_status(mg)
        except Exception as e:
            logger.warning(f"Could not update status of {mg.metadata.name}: {e}")
        return ReconcileResult(success=False, message=message)

    async def _invalid(
        self, resource: Dict[str, Any], ctx: ReconcilerContext, error: str
    ) -> ReconcileResult:
        """Report a resource whose spec cannot be parsed."""
        name = resource.get("metadata", {}).get("name", "")
        message = f"{ERR_RECONCILE_INVALID}: {error}"
        logger.error(
            f"Failed to reconcile {self.resource_class.KIND}/{name}: {message}"
        )
        await ctx.recorder.record(
            resource, Event.warning(REASON_CANNOT_INITIALIZE, message)
        )
        synced = reconcile_error(message).to_dict()
        conditions = [
            c
            for c in (resource.get("status") or {}).get("conditions", [])
            if c.get("type") != synced["type"]
        ]
        conditions.append(synced)
        try:
            await ctx.kube.patch_status(
                *self.resource_class.resource_type(), name, {"conditions": conditions}
            )
        except Exception as e:
            logger.warning(f"Could not update status of {name}: {e}")
        return ReconcileResult(success=False, message=message)
