"""
External client package.

External clients implement the calls to the external API (GitHub) that make
a managed resource's desired state real.
"""

from plugins.external.base import (
    ExternalClient,
    ExternalConnecter,
    ExternalError,
    wrap,
)

__all__ = ["ExternalClient", "ExternalConnecter", "ExternalError", "wrap"]
