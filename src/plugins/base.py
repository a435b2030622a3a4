"""
Core plugin types and dataclasses.

This module contains the results exchanged between the managed reconciler
and the external clients it drives.
"""

from dataclasses import dataclass


@dataclass
class ExternalObservation:
    """Result of observing an external resource."""

    # False when the external resource does not exist. The managed
    # reconciler then calls create, or treats a deletion as finished.
    resource_exists: bool = False

    # False when the external resource exists but differs from the desired
    # state. The managed reconciler then calls update.
    resource_up_to_date: bool = False

    # Human-readable description of what differs, if anything.
    diff: str = ""


@dataclass
class ExternalCreation:
    """Result of creating an external resource."""

    # True when create changed the resource's external name.
    external_name_assigned: bool = False


@dataclass
class ExternalUpdate:
    """Result of updating an external resource."""

    message: str = ""
