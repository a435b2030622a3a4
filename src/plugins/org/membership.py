"""
Membership reconciler - GitHub team memberships managed through
Membership resources.
"""

import logging

from apis import ManagedResource, Membership
from plugins.base import ExternalCreation, ExternalObservation, ExternalUpdate
from plugins.external.base import ExternalClient, ExternalError, wrap
from plugins.external.github.client import GitHubClient, is_not_found
from plugins.external.github.connector import ERR_NOT_MY_TYPE, GitHubConnector
from plugins.reconcilers.base import ReconcilerContext
from plugins.reconcilers.managed import ManagedReconciler
from usage import ProviderConfigUsageTracker

logger = logging.getLogger(__name__)

ERR_GET_MEMBERSHIP = "cannot get team membership"
ERR_ADD_MEMBERSHIP = "cannot add team membership"
ERR_UPDATE_MEMBERSHIP = "cannot update team membership"
ERR_REMOVE_MEMBERSHIP = "cannot remove team membership"


def _as_membership(mg: ManagedResource) -> Membership:
    if not isinstance(mg, Membership):
        raise ExternalError(ERR_NOT_MY_TYPE.format(kind=Membership.KIND))
    return mg


class MembershipExternal(ExternalClient):
    """External client for GitHub team memberships."""

    def __init__(self, service: GitHubClient):
        self.service = service

    async def observe(self, mg: ManagedResource) -> ExternalObservation:
        cr = _as_membership(mg)
        params = cr.spec.for_provider

        try:
            membership = await self.service.get_team_membership_by_slug(
                params.org, params.team, params.user
            )
        except Exception as e:
            if is_not_found(e):
                return ExternalObservation(resource_exists=False)
            raise wrap(e, ERR_GET_MEMBERSHIP) from e

        if membership.get("state") is not None:
            cr.status.at_provider.state = membership["state"]
        if membership.get("role") is not None:
            cr.status.at_provider.role = membership["role"]

        if params.role is not None and membership.get("role") != params.role:
            return ExternalObservation(
                resource_exists=True,
                resource_up_to_date=False,
                diff=f"role: want {params.role!r}, got {membership.get('role')!r}",
            )
        return ExternalObservation(resource_exists=True, resource_up_to_date=True)

    async def create(self, mg: ManagedResource) -> ExternalCreation:
        cr = _as_membership(mg)
        params = cr.spec.for_provider

        logger.info(f"Adding {params.user} to team {params.org}/{params.team}")
        try:
            await self.service.add_team_membership_by_slug(
                params.org, params.team, params.user, role=params.role
            )
        except Exception as e:
            raise wrap(e, ERR_ADD_MEMBERSHIP) from e
        return ExternalCreation()

    async def update(self, mg: ManagedResource) -> ExternalUpdate:
        cr = _as_membership(mg)
        params = cr.spec.for_provider

        # Role is the only mutable field of a membership.
        if params.role is None:
            return ExternalUpdate()

        logger.info(
            f"Updating {params.user} in team {params.org}/{params.team} "
            f"to role {params.role}"
        )
        try:
            await self.service.add_team_membership_by_slug(
                params.org, params.team, params.user, role=params.role
            )
        except Exception as e:
            raise wrap(e, ERR_UPDATE_MEMBERSHIP) from e
        return ExternalUpdate(message=f"role set to {params.role}")

    async def delete(self, mg: ManagedResource) -> None:
        cr = _as_membership(mg)
        params = cr.spec.for_provider

        logger.info(f"Removing {params.user} from team {params.org}/{params.team}")
        try:
            await self.service.remove_team_membership_by_slug(
                params.org, params.team, params.user
            )
        except Exception as e:
            if is_not_found(e):
                return
            raise wrap(e, ERR_REMOVE_MEMBERSHIP) from e


class MembershipConnector(GitHubConnector):
    """Produces MembershipExternal clients for Membership resources."""

    resource_class = Membership

    def new_external(self, service: GitHubClient) -> ExternalClient:
        return MembershipExternal(service)


class MembershipReconciler(ManagedReconciler):
    """Reconciles Membership managed resources."""

    resource_class = Membership

    @property
    def name(self) -> str:
        return "membership"

    def new_connector(self, ctx: ReconcilerContext) -> MembershipConnector:
        return MembershipConnector(
            kube=ctx.kube,
            usage=ProviderConfigUsageTracker(ctx.kube),
            github_config=ctx.github_config,
        )
