"""
Status API - Read-only view of the provider plus manual reconcile triggers.

A FastAPI application served by uvicorn next to the controller.
"""

import logging
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from controller import Controller
from kube import KubeAPIError, NotFoundError

logger = logging.getLogger(__name__)


class ReconcilerInfo(BaseModel):
    """Response model for reconciler plugin information."""

    name: str
    resource_types: List[str]


class ReconciliationResponse(BaseModel):
    """Response model for the latest reconciliation of a resource."""

    kind: str
    name: str
    success: bool
    message: str = ""
    requeue_after: Optional[int] = None
    duration_seconds: Optional[float] = None
    trigger_reason: Optional[str] = None
    reconcile_time: str


class ResourceDetailResponse(BaseModel):
    """Response model for a managed resource and its last reconciliation."""

    resource: Dict[str, Any]
    last_reconcile: Optional[ReconciliationResponse] = None


class StatusServer:
    """Serves the status API for a running controller."""

    def __init__(
        self,
        controller: Controller,
        host: str = "0.0.0.0",
        port: int = 8080,
        log_level: str = "info",
    ):
        self.controller = controller
        self.host = host
        self.port = port
        self.log_level = log_level.lower()
        self.server: Optional[uvicorn.Server] = None
        self.app = FastAPI(
            title="provider-github",
            description="Status API for the GitHub team and membership provider",
            version="0.1.0",
        )
        self._setup_routes()

    def _resource_class(self, kind: str):
        reconciler = self.controller.registry.get_reconciler_for_resource_type(kind)
        resource_class = getattr(reconciler, "resource_class", None)
        if resource_class is None:
            raise HTTPException(status_code=404, detail=f"Unknown kind: {kind}")
        return resource_class

    def _setup_routes(self) -> None:
        """
        Set up the FastAPI routes.

        - Health: GET /healthz, GET /readyz
        - Reconcilers: GET /api/v1/reconcilers
        - Resources: GET /api/v1/resources, GET /api/v1/resources/{kind}/{name}
        - Reconciliation: POST /api/v1/resources/{kind}/{name}/reconcile
        """
        registry = self.controller.registry

        @self.app.get("/healthz")
        async def healthz():
            """Liveness endpoint."""
            return {"status": "ok", "service": "provider-github"}

        @self.app.get("/readyz")
        async def readyz():
            """Readiness endpoint; ready once the controller is running."""
            if not self.controller.running:
                raise HTTPException(status_code=503, detail="Controller not running")
            return {"status": "ready"}

        @self.app.get("/api/v1/reconcilers", response_model=List[ReconcilerInfo])
        async def list_reconcilers():
            """List registered reconciler plugins."""
            return [
                ReconcilerInfo(**registry.get_reconciler_plugin_info(name))
                for name in registry.list_reconciler_plugins()
            ]

        @self.app.get(
            "/api/v1/resources", response_model=List[ReconciliationResponse]
        )
        async def list_resources(kind: Optional[str] = None):
            """List the latest reconciliation of each resource."""
            if kind is not None and not registry.has_reconciler_for_resource_type(
                kind
            ):
                raise HTTPException(status_code=404, detail=f"Unknown kind: {kind}")
            return self.controller.list_reconciliations(kind)

        @self.app.get(
            "/api/v1/resources/{kind}/{name}", response_model=ResourceDetailResponse
        )
        async def get_resource(kind: str, name: str):
            """Get a managed resource and its latest reconciliation."""
            resource_class = self._resource_class(kind)
            try:
                resource = await self.controller.kube.get(
                    *resource_class.resource_type(), name
                )
            except NotFoundError:
                raise HTTPException(
                    status_code=404, detail=f"{kind}/{name} not found"
                )
            except KubeAPIError as e:
                logger.error(f"Failed to get {kind}/{name}: {e}")
                raise HTTPException(status_code=502, detail=str(e))

            return ResourceDetailResponse(
                resource=resource,
                last_reconcile=self.controller.get_reconciliation(kind, name),
            )

        @self.app.post("/api/v1/resources/{kind}/{name}/reconcile", status_code=202)
        async def trigger_reconcile(kind: str, name: str):
            """Trigger immediate reconciliation of a resource."""
            try:
                self.controller.trigger_reconciliation(kind, name)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {
                "message": "Reconciliation triggered",
                "kind": kind,
                "name": name,
            }

    async def start(self) -> None:
        """Start the HTTP server."""
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level=self.log_level,
        )
        self.server = uvicorn.Server(config)

        logger.info(f"Starting status API on {self.host}:{self.port}")
        await self.server.serve()

    async def stop(self) -> None:
        """Stop the HTTP server gracefully."""
        logger.info("Stopping status API")
        if self.server:
            self.server.should_exit = True
