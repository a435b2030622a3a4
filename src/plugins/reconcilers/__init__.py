"""
Reconciler plugins package.

Reconciler plugins own the reconciliation logic for one or more resource types.
They are discovered via Python entry points (group: 'provider_github.reconcilers').
"""

from plugins.reconcilers.base import (
    ReconcilerPlugin,
    ReconcilerContext,
    ReconcileResult,
)
from plugins.reconcilers.managed import ManagedReconciler

__all__ = [
    "ManagedReconciler",
    "ReconcilerPlugin",
    "ReconcilerContext",
    "ReconcileResult",
]
