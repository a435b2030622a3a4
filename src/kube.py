"""
Kubernetes API client - Async adapter over kubernetes_asyncio.

Only the calls the provider needs: reading ProviderConfigs and Secrets,
listing managed resources, patching their metadata and status, and
recording events. All managed kinds are cluster-scoped.
"""

import json
import logging
from typing import Any, Awaitable, Dict, List

from kubernetes_asyncio import client
from kubernetes_asyncio import config as kube_config
from kubernetes_asyncio.client.exceptions import ApiException

from config import KubernetesConfig

logger = logging.getLogger(__name__)


class KubeAPIError(Exception):
    """Raised when the Kubernetes API returns a non-2xx response."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}")


class NotFoundError(KubeAPIError):
    """Raised when the requested object does not exist."""


class ConflictError(KubeAPIError):
    """Raised when the object already exists or was modified concurrently."""


def api_error(e: ApiException) -> KubeAPIError:
    """Translate an ApiException into a KubeAPIError."""
    message = e.reason or ""
    if e.body:
        try:
            message = json.loads(e.body).get("message", message)
        except (TypeError, ValueError, AttributeError):
            message = str(e.body)
    status = e.status or 0
    if status == 404:
        return NotFoundError(status, message)
    if status == 409:
        return ConflictError(status, message)
    return KubeAPIError(status, message)


def kubeconfig_for(api_url: str, token: str, verify_ssl: bool) -> Dict[str, Any]:
    """Build a single-context kubeconfig for an explicit API server."""
    user: Dict[str, Any] = {"token": token} if token else {}
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "current-context": "provider",
        "clusters": [
            {
                "name": "provider",
                "cluster": {
                    "server": api_url,
                    "insecure-skip-tls-verify": not verify_ssl,
                },
            }
        ],
        "users": [{"name": "provider", "user": user}],
        "contexts": [
            {
                "name": "provider",
                "context": {"cluster": "provider", "user": "provider"},
            }
        ],
    }


class KubeClient:
    """Async client for the Kubernetes API server."""

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client
        self.custom = client.CustomObjectsApi(api_client)
        self.core = client.CoreV1Api(api_client)

    def __repr__(self) -> str:
        return f"KubeClient(api_url={self.api_url!r})"

    @property
    def api_url(self) -> str:
        return self.api_client.configuration.host

    @classmethod
    async def from_config(cls, cfg: KubernetesConfig) -> "KubeClient":
        """
        Build a client from configuration.

        Precedence: explicit API URL, then in-cluster service account,
        then kubeconfig file (KUBECONFIG or ~/.kube/config).
        """
        configuration = client.Configuration()
        if cfg.api_url:
            await kube_config.load_kube_config_from_dict(
                kubeconfig_for(cfg.api_url, cfg.token, cfg.verify_ssl),
                client_configuration=configuration,
            )
        elif cfg.in_cluster:
            kube_config.load_incluster_config(client_configuration=configuration)
        else:
            await kube_config.load_kube_config(
                config_file=cfg.kubeconfig or None,
                context=cfg.context or None,
                client_configuration=configuration,
            )
        return cls(client.ApiClient(configuration))

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.api_client.close()

    async def _call(self, request: Awaitable[Any]) -> Any:
        try:
            return await request
        except ApiException as e:
            raise api_error(e) from e

    async def get(
        self, group: str, version: str, plural: str, name: str
    ) -> Dict[str, Any]:
        """Get a single custom object."""
        return await self._call(
            self.custom.get_cluster_custom_object(group, version, plural, name)
        )

    async def list(self, group: str, version: str, plural: str) -> List[Dict[str, Any]]:
        """List a custom object collection and return its items."""
        data = await self._call(
            self.custom.list_cluster_custom_object(group, version, plural)
        )
        return data.get("items", [])

    async def create(
        self, group: str, version: str, plural: str, body: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Create a custom object."""
        return await self._call(
            self.custom.create_cluster_custom_object(group, version, plural, body)
        )

    async def patch(
        self, group: str, version: str, plural: str, name: str, body: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Apply a JSON merge-patch to a custom object."""
        return await self._call(
            self.custom.patch_cluster_custom_object(group, version, plural, name, body)
        )

    async def patch_status(
        self,
        group: str,
        version: str,
        plural: str,
        name: str,
        status: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Merge-patch the status subresource of a custom object."""
        return await self._call(
            self.custom.patch_cluster_custom_object_status(
                group, version, plural, name, {"status": status}
            )
        )

    async def read_secret(self, name: str, namespace: str) -> Dict[str, str]:
        """Read a Secret and return its base64-encoded data."""
        secret = await self._call(self.core.read_namespaced_secret(name, namespace))
        return secret.data or {}

    async def create_event(self, namespace: str, body: Dict[str, Any]) -> Any:
        """Create a core/v1 Event."""
        return await self._call(self.core.create_namespaced_event(namespace, body))
