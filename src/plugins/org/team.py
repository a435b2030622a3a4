"""
Team reconciler - GitHub teams managed through Team resources.
"""

import logging
from typing import Any, Dict, List

from apis import ManagedResource, Team, TeamParameters
from plugins.base import ExternalCreation, ExternalObservation, ExternalUpdate
from plugins.external.base import ExternalClient, ExternalError, wrap
from plugins.external.github.client import GitHubClient, is_not_found
from plugins.external.github.connector import ERR_NOT_MY_TYPE, GitHubConnector
from plugins.reconcilers.base import ReconcilerContext
from plugins.reconcilers.managed import ManagedReconciler
from usage import ProviderConfigUsageTracker

logger = logging.getLogger(__name__)

ERR_GET_TEAM = "cannot get team"
ERR_CREATE_TEAM = "cannot create team"
ERR_UPDATE_TEAM = "cannot update team"
ERR_DELETE_TEAM = "cannot delete team"


def _as_team(mg: ManagedResource) -> Team:
    if not isinstance(mg, Team):
        raise ExternalError(ERR_NOT_MY_TYPE.format(kind=Team.KIND))
    return mg


def team_diff(params: TeamParameters, team: Dict[str, Any]) -> List[str]:
    """
    Compare desired team parameters with the team GitHub reports.

    Only fields set in the parameters are compared.

    Returns:
        One entry per differing field; empty when up to date.
    """
    diffs = []
    for field in ("description", "privacy"):
        desired = getattr(params, field)
        if desired is None:
            continue
        observed = team.get(field)
        if observed is None or observed != desired:
            diffs.append(f"{field}: want {desired!r}, got {observed!r}")
    return diffs


class TeamExternal(ExternalClient):
    """External client for GitHub teams."""

    def __init__(self, service: GitHubClient):
        self.service = service

    async def observe(self, mg: ManagedResource) -> ExternalObservation:
        cr = _as_team(mg)
        params = cr.spec.for_provider

        try:
            team = await self.service.get_team_by_slug(
                params.org, cr.get_external_name()
            )
        except Exception as e:
            if is_not_found(e):
                return ExternalObservation(resource_exists=False)
            raise wrap(e, ERR_GET_TEAM) from e

        if team.get("node_id") is not None:
            cr.status.at_provider.node_id = team["node_id"]

        diffs = team_diff(params, team)
        return ExternalObservation(
            resource_exists=True,
            resource_up_to_date=not diffs,
            diff="; ".join(diffs),
        )

    async def create(self, mg: ManagedResource) -> ExternalCreation:
        cr = _as_team(mg)
        params = cr.spec.for_provider
        name = cr.get_external_name()

        logger.info(f"Creating team {params.org}/{name}")
        try:
            team = await self.service.create_team(
                params.org,
                name=name,
                description=params.description,
                privacy=params.privacy,
            )
        except Exception as e:
            raise wrap(e, ERR_CREATE_TEAM) from e

        # GitHub derives the slug from the name; the slug is what lookups use.
        slug = (team or {}).get("slug")
        if slug and slug != name:
            cr.set_external_name(slug)
            return ExternalCreation(external_name_assigned=True)
        return ExternalCreation()

    async def update(self, mg: ManagedResource) -> ExternalUpdate:
        cr = _as_team(mg)
        params = cr.spec.for_provider
        slug = cr.get_external_name()

        logger.info(f"Updating team {params.org}/{slug}")
        try:
            await self.service.edit_team_by_slug(
                params.org,
                slug,
                name=slug,
                description=params.description,
                privacy=params.privacy,
            )
        except Exception as e:
            raise wrap(e, ERR_UPDATE_TEAM) from e
        return ExternalUpdate()

    async def delete(self, mg: ManagedResource) -> None:
        cr = _as_team(mg)
        params = cr.spec.for_provider
        slug = cr.get_external_name()

        logger.info(f"Deleting team {params.org}/{slug}")
        try:
            await self.service.delete_team_by_slug(params.org, slug)
        except Exception as e:
            if is_not_found(e):
                return
            raise wrap(e, ERR_DELETE_TEAM) from e


class TeamConnector(GitHubConnector):
    """Produces TeamExternal clients for Team resources."""

    resource_class = Team

    def new_external(self, service: GitHubClient) -> ExternalClient:
        return TeamExternal(service)


class TeamReconciler(ManagedReconciler):
    """Reconciles Team managed resources."""

    resource_class = Team

    @property
    def name(self) -> str:
        return "team"

    def new_connector(self, ctx: ReconcilerContext) -> TeamConnector:
        return TeamConnector(
            kube=ctx.kube,
            usage=ProviderConfigUsageTracker(ctx.kube),
            github_config=ctx.github_config,
        )
