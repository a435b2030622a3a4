"""
External Client Base - Abstract interface for external resource APIs.

A connector produces an external client for a managed resource. The
external client observes, then either creates, updates, or deletes the
external resource so that it reflects the managed resource's desired state.
"""

from abc import ABC, abstractmethod

from apis import ManagedResource
from plugins.base import ExternalCreation, ExternalObservation, ExternalUpdate


class ExternalError(Exception):
    """Raised by connectors and external clients; wraps the underlying cause."""


def wrap(err: Exception, message: str) -> ExternalError:
    """
    Wrap an error with a static message.

    Use as ``raise wrap(e, MSG) from e``.
    """
    return ExternalError(f"{message}: {err}")


class ExternalClient(ABC):
    """
    Abstract base class for external clients.

    Each method receives the managed resource being reconciled. observe may
    write observed fields into the resource's status; create may change its
    external name.
    """

    @abstractmethod
    async def observe(self, mg: ManagedResource) -> ExternalObservation:
        """
        Observe the external resource.

        Args:
            mg: The managed resource.

        Returns:
            ExternalObservation saying whether the resource exists and is
            up to date.
        """
        pass

    @abstractmethod
    async def create(self, mg: ManagedResource) -> ExternalCreation:
        """Create the external resource."""
        pass

    @abstractmethod
    async def update(self, mg: ManagedResource) -> ExternalUpdate:
        """Update the external resource to match the desired state."""
        pass

    @abstractmethod
    async def delete(self, mg: ManagedResource) -> None:
        """Delete the external resource."""
        pass


class ExternalConnecter(ABC):
    """Abstract base class for producing external clients."""

    @abstractmethod
    async def connect(self, mg: ManagedResource) -> ExternalClient:
        """
        Produce an ExternalClient for the managed resource.

        Args:
            mg: The managed resource.

        Returns:
            An ExternalClient ready to act on the resource.

        Raises:
            ExternalError: If credentials or the client cannot be obtained.
        """
        pass
