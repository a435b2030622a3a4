"""
Provider Controller - Runs the reconciler plugins.

Similar to a Kubernetes controller manager, starts one reconciliation loop
per registered reconciler and stops them on shutdown.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from config import ControllerConfig, GitHubConfig
from events import EventRecorder
from kube import KubeClient
from plugins.reconcilers.base import ReconcilerContext, ReconcilerPlugin
from plugins.registry import PluginRegistry, get_registry

logger = logging.getLogger(__name__)


class Controller:
    """
    Main controller that runs the reconciler plugin loops.

    Each registered reconciler gets the same ReconcilerContext, giving it
    the Kubernetes client, event recorder and shutdown signal.
    """

    def __init__(
        self,
        kube: KubeClient,
        registry: Optional[PluginRegistry] = None,
        config: Optional[ControllerConfig] = None,
        github_config: Optional[GitHubConfig] = None,
        recorder: Optional[EventRecorder] = None,
    ):
        self.kube = kube
        self.registry = registry or get_registry()
        self.config = config or ControllerConfig()
        self.running = False

        self._shutdown_event = asyncio.Event()
        self._reconciler_tasks: List[asyncio.Task] = []
        self.ctx = ReconcilerContext(
            kube=kube,
            recorder=recorder or EventRecorder(kube),
            shutdown_event=self._shutdown_event,
            config=self.config,
            github_config=github_config,
        )

    async def start(self):
        """Start all reconciler plugin loops and wait for them to finish."""
        logger.info("Starting Provider Controller")
        self.running = True
        self._shutdown_event.clear()
        self._reconciler_tasks = []

        for reconciler_name in self.registry.list_reconciler_plugins():
            reconciler = self.registry.get_reconciler_plugin(reconciler_name)
            task = asyncio.create_task(self._run_reconciler(reconciler))
            self._reconciler_tasks.append(task)
            logger.info(f"Started reconciler plugin: {reconciler_name}")

        try:
            await asyncio.gather(*self._reconciler_tasks)
        except Exception as e:
            logger.error(f"Controller error: {e}")
            raise
        finally:
            self.running = False

    async def stop(self):
        """Stop the controller and all reconciler plugins gracefully."""
        logger.info("Stopping Provider Controller")
        self.running = False
        self._shutdown_event.set()

        for reconciler_name in self.registry.list_reconciler_plugins():
            try:
                reconciler = self.registry.get_reconciler_plugin(reconciler_name)
                await reconciler.stop()
                logger.info(f"Stopped reconciler plugin: {reconciler_name}")
            except Exception as e:
                logger.error(f"Error stopping reconciler '{reconciler_name}': {e}")

    async def _run_reconciler(self, reconciler: ReconcilerPlugin) -> None:
        """Run a reconciler plugin, catching exceptions."""
        try:
            await reconciler.start(self.ctx)
        except Exception as e:
            logger.error(
                f"Reconciler plugin '{reconciler.name}' crashed: {e}",
                exc_info=True,
            )

    def trigger_reconciliation(self, kind: str, name: str) -> None:
        """
        Manually trigger reconciliation of a resource.

        Raises:
            ValueError: If no reconciler handles the kind
        """
        if not self.registry.has_reconciler_for_resource_type(kind):
            raise ValueError(f"No reconciler handles kind: {kind}")
        logger.info(f"Manually triggering reconciliation for {kind}/{name}")
        self.ctx.request_reconcile(kind, name)

    def list_reconciliations(self, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        """List the latest reconciliation of each resource."""
        return self.ctx.list_reconciliations(kind)

    def get_reconciliation(self, kind: str, name: str) -> Optional[Dict[str, Any]]:
        """Get the latest reconciliation of a resource."""
        return self.ctx.get_reconciliation(kind, name)
