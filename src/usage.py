"""
ProviderConfig usage tracking.

Each managed resource records which ProviderConfig it uses by owning a
ProviderConfigUsage object, so a ProviderConfig in use can be identified.
"""

import logging
from typing import Any, Dict

from apis import (
    LABEL_PROVIDER_CONFIG,
    PROVIDER_GROUP,
    USAGE_KIND,
    USAGE_PLURAL,
    VERSION,
    ManagedResource,
)
from kube import ConflictError, KubeClient

logger = logging.getLogger(__name__)


def usage_for(mg: ManagedResource) -> Dict[str, Any]:
    """Build the ProviderConfigUsage object for a managed resource."""
    pc_name = mg.get_provider_config_reference().name
    return {
        "apiVersion": f"{PROVIDER_GROUP}/{VERSION}",
        "kind": USAGE_KIND,
        "metadata": {
            "name": mg.metadata.uid,
            "labels": {LABEL_PROVIDER_CONFIG: pc_name},
            "ownerReferences": [
                {
                    "apiVersion": mg.api_version,
                    "kind": mg.kind,
                    "name": mg.metadata.name,
                    "uid": mg.metadata.uid,
                }
            ],
        },
        "providerConfigRef": {"name": pc_name},
        "resourceRef": {
            "apiVersion": mg.api_version,
            "kind": mg.kind,
            "name": mg.metadata.name,
        },
    }


class ProviderConfigUsageTracker:
    """Creates ProviderConfigUsage objects for managed resources."""

    def __init__(self, kube: KubeClient):
        self._kube = kube

    async def track(self, mg: ManagedResource) -> None:
        """
        Record that a managed resource uses its ProviderConfig.

        An existing usage for the same resource is accepted as-is.
        """
        body = usage_for(mg)
        try:
            await self._kube.create(PROVIDER_GROUP, VERSION, USAGE_PLURAL, body)
            logger.debug(
                f"Tracked ProviderConfig usage for {mg.kind}/{mg.metadata.name}"
            )
        except ConflictError:
            pass
