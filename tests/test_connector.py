"""Unit tests for the GitHub connector."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from apis import Membership, Team
from kube import NotFoundError
from plugins.external.base import ExternalError
from plugins.external.github.client import GitHubClient
from plugins.external.github.connector import (
    ERR_GET_PC,
    ERR_GET_SECRET,
    ERR_NEW_CLIENT,
    ERR_NO_SECRET_REF,
    ERR_TRACK_PC_USAGE,
)
from plugins.org.team import TeamConnector, TeamExternal


class TestGitHubConnector:
    """Tests for GitHubConnector.connect."""

    @pytest.fixture
    def usage(self):
        usage = MagicMock()
        usage.track = AsyncMock()
        return usage

    @pytest.fixture
    def connector(self, mock_kube, usage):
        return TeamConnector(kube=mock_kube, usage=usage)

    @pytest.fixture
    def team(self, sample_team):
        return Team.model_validate(sample_team)

    def _kube_returns(self, mock_kube, provider_config, secret):
        mock_kube.get = AsyncMock(return_value=provider_config)
        mock_kube.read_secret = AsyncMock(return_value=(secret or {}).get("data", {}))

    @pytest.mark.asyncio
    async def test_connect(
        self, connector, mock_kube, usage, team, sample_provider_config, sample_secret
    ):
        self._kube_returns(mock_kube, sample_provider_config, sample_secret)

        external = await connector.connect(team)

        assert isinstance(external, TeamExternal)
        assert isinstance(external.service, GitHubClient)
        assert external.service.github_token == "ghp_testtoken"
        usage.track.assert_awaited_once_with(team)
        mock_kube.get.assert_awaited_once_with(
            "github.crossplane.io", "v1alpha1", "providerconfigs", "default"
        )
        mock_kube.read_secret.assert_awaited_once_with(
            "github-creds", "crossplane-system"
        )

    @pytest.mark.asyncio
    async def test_connect_uses_github_config(
        self, mock_kube, usage, team, sample_provider_config, sample_secret
    ):
        from config import GitHubConfig

        self._kube_returns(mock_kube, sample_provider_config, sample_secret)
        connector = TeamConnector(
            kube=mock_kube,
            usage=usage,
            github_config=GitHubConfig(api_base_url="https://ghe.example.com/api/v3"),
        )
        external = await connector.connect(team)
        assert external.service.api_base_url == "https://ghe.example.com/api/v3"

    @pytest.mark.asyncio
    async def test_not_my_type(self, connector, sample_membership):
        membership = Membership.model_validate(sample_membership)
        with pytest.raises(ExternalError) as exc_info:
            await connector.connect(membership)
        assert str(exc_info.value) == "managed resource is not a Team custom resource"

    @pytest.mark.asyncio
    async def test_track_usage_failure(self, connector, usage, team):
        usage.track = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(ExternalError) as exc_info:
            await connector.connect(team)
        assert str(exc_info.value) == f"{ERR_TRACK_PC_USAGE}: boom"

    @pytest.mark.asyncio
    async def test_missing_provider_config(self, connector, mock_kube, team):
        mock_kube.get = AsyncMock(side_effect=NotFoundError(404, "not found"))
        with pytest.raises(ExternalError) as exc_info:
            await connector.connect(team)
        assert str(exc_info.value) == f"{ERR_GET_PC}: 404: not found"

    @pytest.mark.asyncio
    async def test_missing_secret_ref(
        self, connector, mock_kube, team, sample_provider_config
    ):
        del sample_provider_config["spec"]["credentials"]["secretRef"]
        self._kube_returns(mock_kube, sample_provider_config, None)

        with pytest.raises(ExternalError) as exc_info:
            await connector.connect(team)

        assert str(exc_info.value) == ERR_NO_SECRET_REF
        mock_kube.read_secret.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_secret(
        self, connector, mock_kube, team, sample_provider_config
    ):
        mock_kube.get = AsyncMock(return_value=sample_provider_config)
        mock_kube.read_secret = AsyncMock(
            side_effect=NotFoundError(404, "secret not found")
        )
        with pytest.raises(ExternalError) as exc_info:
            await connector.connect(team)
        assert str(exc_info.value).startswith(ERR_GET_SECRET)

    @pytest.mark.asyncio
    async def test_empty_token(
        self, connector, mock_kube, team, sample_provider_config, sample_secret
    ):
        sample_secret["data"] = {}
        self._kube_returns(mock_kube, sample_provider_config, sample_secret)
        with pytest.raises(ExternalError) as exc_info:
            await connector.connect(team)
        assert str(exc_info.value) == f"{ERR_NEW_CLIENT}: GitHub token is empty"
