"""Unit tests for the Membership external client and reconciler."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from apis import Membership, Team
from plugins.external.base import ExternalError
from plugins.external.github.client import GitHubAPIError
from plugins.org.membership import (
    ERR_ADD_MEMBERSHIP,
    ERR_GET_MEMBERSHIP,
    ERR_REMOVE_MEMBERSHIP,
    ERR_UPDATE_MEMBERSHIP,
    MembershipConnector,
    MembershipExternal,
    MembershipReconciler,
)


@pytest.fixture
def service():
    """Create a mock GitHub client."""
    service = MagicMock()
    service.get_team_membership_by_slug = AsyncMock()
    service.add_team_membership_by_slug = AsyncMock()
    service.remove_team_membership_by_slug = AsyncMock()
    return service


@pytest.fixture
def membership(sample_membership):
    return Membership.model_validate(sample_membership)


class TestMembershipObserve:
    """Tests for MembershipExternal.observe."""

    @pytest.mark.asyncio
    async def test_not_found(self, service, membership):
        service.get_team_membership_by_slug.side_effect = GitHubAPIError(
            404, "Not Found"
        )
        observation = await MembershipExternal(service).observe(membership)
        assert observation.resource_exists is False

    @pytest.mark.asyncio
    async def test_other_error_is_wrapped(self, service, membership):
        service.get_team_membership_by_slug.side_effect = GitHubAPIError(500, "boom")
        with pytest.raises(ExternalError) as exc_info:
            await MembershipExternal(service).observe(membership)
        assert str(exc_info.value).startswith(ERR_GET_MEMBERSHIP)

    @pytest.mark.asyncio
    async def test_exists(self, service, membership):
        service.get_team_membership_by_slug.return_value = {
            "state": "active",
            "role": "member",
        }
        observation = await MembershipExternal(service).observe(membership)

        service.get_team_membership_by_slug.assert_awaited_once_with(
            "acme", "platform", "octocat"
        )
        assert observation.resource_exists is True
        assert observation.resource_up_to_date is True
        assert membership.status.at_provider.state == "active"
        assert membership.status.at_provider.role == "member"

    @pytest.mark.asyncio
    async def test_pending_state_is_observed(self, service, membership):
        service.get_team_membership_by_slug.return_value = {
            "state": "pending",
            "role": "member",
        }
        observation = await MembershipExternal(service).observe(membership)
        assert observation.resource_up_to_date is True
        assert membership.status.at_provider.state == "pending"

    @pytest.mark.asyncio
    async def test_role_mismatch(self, service, membership):
        membership.spec.for_provider.role = "maintainer"
        service.get_team_membership_by_slug.return_value = {
            "state": "active",
            "role": "member",
        }
        observation = await MembershipExternal(service).observe(membership)
        assert observation.resource_exists is True
        assert observation.resource_up_to_date is False
        assert observation.diff == "role: want 'maintainer', got 'member'"

    @pytest.mark.asyncio
    async def test_not_my_type(self, service, sample_team):
        with pytest.raises(ExternalError):
            await MembershipExternal(service).observe(Team.model_validate(sample_team))


class TestMembershipCreate:
    """Tests for MembershipExternal.create."""

    @pytest.mark.asyncio
    async def test_create(self, service, membership):
        creation = await MembershipExternal(service).create(membership)
        service.add_team_membership_by_slug.assert_awaited_once_with(
            "acme", "platform", "octocat", role=None
        )
        assert creation.external_name_assigned is False

    @pytest.mark.asyncio
    async def test_create_with_role(self, service, membership):
        membership.spec.for_provider.role = "maintainer"
        await MembershipExternal(service).create(membership)
        service.add_team_membership_by_slug.assert_awaited_once_with(
            "acme", "platform", "octocat", role="maintainer"
        )

    @pytest.mark.asyncio
    async def test_create_error(self, service, membership):
        service.add_team_membership_by_slug.side_effect = GitHubAPIError(
            422, "Unprocessable"
        )
        with pytest.raises(ExternalError) as exc_info:
            await MembershipExternal(service).create(membership)
        assert str(exc_info.value).startswith(ERR_ADD_MEMBERSHIP)


class TestMembershipUpdate:
    """Tests for MembershipExternal.update."""

    @pytest.mark.asyncio
    async def test_update_without_role_is_noop(self, service, membership):
        update = await MembershipExternal(service).update(membership)
        service.add_team_membership_by_slug.assert_not_awaited()
        assert update.message == ""

    @pytest.mark.asyncio
    async def test_update_role(self, service, membership):
        membership.spec.for_provider.role = "maintainer"
        update = await MembershipExternal(service).update(membership)
        service.add_team_membership_by_slug.assert_awaited_once_with(
            "acme", "platform", "octocat", role="maintainer"
        )
        assert update.message == "role set to maintainer"

    @pytest.mark.asyncio
    async def test_update_error(self, service, membership):
        membership.spec.for_provider.role = "maintainer"
        service.add_team_membership_by_slug.side_effect = GitHubAPIError(403, "no")
        with pytest.raises(ExternalError) as exc_info:
            await MembershipExternal(service).update(membership)
        assert str(exc_info.value).startswith(ERR_UPDATE_MEMBERSHIP)


class TestMembershipDelete:
    """Tests for MembershipExternal.delete."""

    @pytest.mark.asyncio
    async def test_delete(self, service, membership):
        await MembershipExternal(service).delete(membership)
        service.remove_team_membership_by_slug.assert_awaited_once_with(
            "acme", "platform", "octocat"
        )

    @pytest.mark.asyncio
    async def test_delete_already_gone(self, service, membership):
        service.remove_team_membership_by_slug.side_effect = GitHubAPIError(
            404, "Not Found"
        )
        await MembershipExternal(service).delete(membership)

    @pytest.mark.asyncio
    async def test_delete_error(self, service, membership):
        service.remove_team_membership_by_slug.side_effect = GitHubAPIError(
            500, "boom"
        )
        with pytest.raises(ExternalError) as exc_info:
            await MembershipExternal(service).delete(membership)
        assert str(exc_info.value).startswith(ERR_REMOVE_MEMBERSHIP)


class TestMembershipReconciler:
    """Tests for MembershipReconciler wiring."""

    def test_metadata(self):
        reconciler = MembershipReconciler()
        assert reconciler.name == "membership"
        assert reconciler.resource_types == ["Membership"]

    def test_new_connector(self, reconciler_context):
        connector = MembershipReconciler().new_connector(reconciler_context)
        assert isinstance(connector, MembershipConnector)
