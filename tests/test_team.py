"""Unit tests for the Team external client and reconciler."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from apis import Membership, Team, TeamParameters
from plugins.external.base import ExternalError
from plugins.external.github.client import GitHubAPIError
from plugins.org.team import (
    ERR_CREATE_TEAM,
    ERR_DELETE_TEAM,
    ERR_GET_TEAM,
    ERR_UPDATE_TEAM,
    TeamConnector,
    TeamExternal,
    TeamReconciler,
    team_diff,
)


@pytest.fixture
def service():
    """Create a mock GitHub client."""
    service = MagicMock()
    service.get_team_by_slug = AsyncMock()
    service.create_team = AsyncMock()
    service.edit_team_by_slug = AsyncMock()
    service.delete_team_by_slug = AsyncMock()
    return service


@pytest.fixture
def team(sample_team):
    return Team.model_validate(sample_team)


class TestTeamDiff:
    """Tests for team_diff."""

    def test_matching(self):
        params = TeamParameters(org="acme", description="d", privacy="closed")
        assert team_diff(params, {"description": "d", "privacy": "closed"}) == []

    def test_unset_fields_ignored(self):
        params = TeamParameters(org="acme")
        assert team_diff(params, {"description": "d", "privacy": "secret"}) == []

    def test_mismatch(self):
        params = TeamParameters(org="acme", description="new", privacy="secret")
        diffs = team_diff(params, {"description": "old", "privacy": "closed"})
        assert diffs == [
            "description: want 'new', got 'old'",
            "privacy: want 'secret', got 'closed'",
        ]

    def test_missing_observed_field(self):
        params = TeamParameters(org="acme", description="d")
        assert team_diff(params, {}) == ["description: want 'd', got None"]


class TestTeamObserve:
    """Tests for TeamExternal.observe."""

    @pytest.mark.asyncio
    async def test_not_found(self, service, team):
        service.get_team_by_slug.side_effect = GitHubAPIError(404, "Not Found")
        observation = await TeamExternal(service).observe(team)
        assert observation.resource_exists is False

    @pytest.mark.asyncio
    async def test_other_error_is_wrapped(self, service, team):
        service.get_team_by_slug.side_effect = GitHubAPIError(500, "boom")
        with pytest.raises(ExternalError) as exc_info:
            await TeamExternal(service).observe(team)
        assert str(exc_info.value) == (
            f"{ERR_GET_TEAM}: GitHub API returned 500: boom"
        )

    @pytest.mark.asyncio
    async def test_up_to_date(self, service, team):
        service.get_team_by_slug.return_value = {
            "slug": "platform",
            "node_id": "T_kwDOA",
            "description": "Platform engineering",
            "privacy": "closed",
        }
        observation = await TeamExternal(service).observe(team)

        service.get_team_by_slug.assert_awaited_once_with("acme", "platform")
        assert observation.resource_exists is True
        assert observation.resource_up_to_date is True
        assert team.status.at_provider.node_id == "T_kwDOA"

    @pytest.mark.asyncio
    async def test_description_mismatch(self, service, team):
        service.get_team_by_slug.return_value = {
            "description": "Something else",
            "privacy": "closed",
        }
        observation = await TeamExternal(service).observe(team)
        assert observation.resource_exists is True
        assert observation.resource_up_to_date is False
        assert "description" in observation.diff

    @pytest.mark.asyncio
    async def test_privacy_mismatch(self, service, team):
        service.get_team_by_slug.return_value = {
            "description": "Platform engineering",
            "privacy": "secret",
        }
        observation = await TeamExternal(service).observe(team)
        assert observation.resource_up_to_date is False
        assert observation.diff == "privacy: want 'closed', got 'secret'"

    @pytest.mark.asyncio
    async def test_not_my_type(self, service, sample_membership):
        membership = Membership.model_validate(sample_membership)
        with pytest.raises(ExternalError):
            await TeamExternal(service).observe(membership)


class TestTeamCreate:
    """Tests for TeamExternal.create."""

    @pytest.mark.asyncio
    async def test_create(self, service, team):
        service.create_team.return_value = {"slug": "platform"}
        creation = await TeamExternal(service).create(team)

        service.create_team.assert_awaited_once_with(
            "acme",
            name="platform",
            description="Platform engineering",
            privacy="closed",
        )
        assert creation.external_name_assigned is False
        assert team.get_external_name() == "platform"

    @pytest.mark.asyncio
    async def test_create_assigns_slug(self, service, team):
        team.set_external_name("Platform Team")
        service.create_team.return_value = {"slug": "platform-team"}
        creation = await TeamExternal(service).create(team)
        assert creation.external_name_assigned is True
        assert team.get_external_name() == "platform-team"

    @pytest.mark.asyncio
    async def test_create_error(self, service, team):
        service.create_team.side_effect = GitHubAPIError(422, "Validation Failed")
        with pytest.raises(ExternalError) as exc_info:
            await TeamExternal(service).create(team)
        assert str(exc_info.value).startswith(ERR_CREATE_TEAM)


class TestTeamUpdate:
    """Tests for TeamExternal.update."""

    @pytest.mark.asyncio
    async def test_update(self, service, team):
        await TeamExternal(service).update(team)
        service.edit_team_by_slug.assert_awaited_once_with(
            "acme",
            "platform",
            name="platform",
            description="Platform engineering",
            privacy="closed",
        )

    @pytest.mark.asyncio
    async def test_update_error(self, service, team):
        service.edit_team_by_slug.side_effect = GitHubAPIError(403, "Forbidden")
        with pytest.raises(ExternalError) as exc_info:
            await TeamExternal(service).update(team)
        assert str(exc_info.value).startswith(ERR_UPDATE_TEAM)


class TestTeamDelete:
    """Tests for TeamExternal.delete."""

    @pytest.mark.asyncio
    async def test_delete(self, service, team):
        await TeamExternal(service).delete(team)
        service.delete_team_by_slug.assert_awaited_once_with("acme", "platform")

    @pytest.mark.asyncio
    async def test_delete_already_gone(self, service, team):
        service.delete_team_by_slug.side_effect = GitHubAPIError(404, "Not Found")
        await TeamExternal(service).delete(team)

    @pytest.mark.asyncio
    async def test_delete_error(self, service, team):
        service.delete_team_by_slug.side_effect = GitHubAPIError(500, "boom")
        with pytest.raises(ExternalError) as exc_info:
            await TeamExternal(service).delete(team)
        assert str(exc_info.value).startswith(ERR_DELETE_TEAM)


class TestTeamReconciler:
    """Tests for TeamReconciler wiring."""

    def test_metadata(self):
        reconciler = TeamReconciler()
        assert reconciler.name == "team"
        assert reconciler.resource_types == ["Team"]
        assert reconciler.resource_class is Team

    def test_new_connector(self, reconciler_context):
        connector = TeamReconciler().new_connector(reconciler_context)
        assert isinstance(connector, TeamConnector)
        assert connector.kube is reconciler_context.kube
        assert connector.github_config is reconciler_context.github_config
