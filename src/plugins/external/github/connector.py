"""
GitHub connector - Resolves credentials and builds a GitHub client.

A connector is expected to produce an ExternalClient when its connect method
is called.
"""

import base64
import logging
from abc import abstractmethod
from typing import Optional, Type

from apis import ManagedResource, ProviderConfig
from config import GitHubConfig
from kube import KubeClient
from plugins.external.base import ExternalClient, ExternalConnecter, ExternalError, wrap
from plugins.external.github.client import GitHubClient, new_client
from usage import ProviderConfigUsageTracker

logger = logging.getLogger(__name__)

ERR_NOT_MY_TYPE = "managed resource is not a {kind} custom resource"
ERR_TRACK_PC_USAGE = "cannot track ProviderConfig usage"
ERR_GET_PC = "cannot get ProviderConfig"
ERR_NO_SECRET_REF = "ProviderConfig does not reference a credentials Secret"
ERR_GET_SECRET = "cannot get credentials Secret"
ERR_NEW_CLIENT = "cannot create new Service"


class GitHubConnector(ExternalConnecter):
    """
    Base connector for resources managed through the GitHub API.

    Subclasses set ``resource_class`` and build their external client in
    ``new_external``.
    """

    resource_class: Type[ManagedResource] = ManagedResource

    def __init__(
        self,
        kube: KubeClient,
        usage: ProviderConfigUsageTracker,
        github_config: Optional[GitHubConfig] = None,
    ):
        self.kube = kube
        self.usage = usage
        self.github_config = github_config or GitHubConfig()

    @abstractmethod
    def new_external(self, service: GitHubClient) -> ExternalClient:
        """Build the external client for this connector's kind."""
        pass

    async def connect(self, mg: ManagedResource) -> ExternalClient:
        """
        Produce an ExternalClient by:

        1. Tracking that the managed resource is using a ProviderConfig.
        2. Getting the managed resource's ProviderConfig.
        3. Getting the ProviderConfig's credentials secret.
        4. Using the credentials secret to form a client.
        """
        if not isinstance(mg, self.resource_class):
            raise ExternalError(ERR_NOT_MY_TYPE.format(kind=self.resource_class.KIND))

        try:
            await self.usage.track(mg)
        except Exception as e:
            raise wrap(e, ERR_TRACK_PC_USAGE) from e

        pc_name = mg.get_provider_config_reference().name
        try:
            raw = await self.kube.get(*ProviderConfig.resource_type(), pc_name)
            pc = ProviderConfig.model_validate(raw)
        except Exception as e:
            raise wrap(e, ERR_GET_PC) from e

        # Only Secret credentials are supported, so a reference is required.
        ref = pc.spec.credentials.secret_ref
        if ref is None:
            raise ExternalError(ERR_NO_SECRET_REF)

        try:
            data = await self.kube.read_secret(ref.name, ref.namespace)
        except Exception as e:
            raise wrap(e, ERR_GET_SECRET) from e

        try:
            encoded = data.get(ref.key, "")
            token = base64.b64decode(encoded).decode("utf-8")
            service = new_client(
                token,
                api_base_url=self.github_config.api_base_url,
                timeout=self.github_config.timeout,
            )
        except Exception as e:
            raise wrap(e, ERR_NEW_CLIENT) from e

        return self.new_external(service)
