"""
Organization reconcilers: GitHub teams and team memberships.
"""

from plugins.org.membership import MembershipReconciler
from plugins.org.team import TeamReconciler

__all__ = ["MembershipReconciler", "TeamReconciler"]
