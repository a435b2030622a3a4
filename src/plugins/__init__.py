"""
Plugin system for the GitHub provider.

This package provides the plugin architecture for reconcilers and the
external clients they drive.
"""

from plugins.base import ExternalCreation, ExternalObservation, ExternalUpdate
from plugins.reconcilers.base import (
    ReconcilerPlugin,
    ReconcilerContext,
    ReconcileResult,
)
from plugins.registry import PluginRegistry, get_registry

__all__ = [
    "ExternalCreation",
    "ExternalObservation",
    "ExternalUpdate",
    "ReconcilerPlugin",
    "ReconcilerContext",
    "ReconcileResult",
    "PluginRegistry",
    "get_registry",
]
