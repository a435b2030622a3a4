"""Pytest configuration and fixtures."""

import asyncio
import base64

import pytest
from unittest.mock import AsyncMock, MagicMock

from config import ControllerConfig, GitHubConfig
from plugins.reconcilers.base import ReconcilerContext


@pytest.fixture
def mock_kube():
    """Create a mock Kubernetes client."""
    kube = AsyncMock()
    kube.get = AsyncMock(return_value={})
    kube.list = AsyncMock(return_value=[])
    kube.create = AsyncMock(return_value={})
    kube.patch = AsyncMock(return_value={})
    kube.patch_status = AsyncMock(return_value={})
    kube.read_secret = AsyncMock(return_value={})
    kube.create_event = AsyncMock(return_value={})
    return kube


@pytest.fixture
def mock_recorder():
    """Create a mock event recorder."""
    recorder = MagicMock()
    recorder.record = AsyncMock()
    return recorder


@pytest.fixture
def reconciler_context(mock_kube, mock_recorder):
    """Create a reconciler context backed by mocks."""
    return ReconcilerContext(
        kube=mock_kube,
        recorder=mock_recorder,
        shutdown_event=asyncio.Event(),
        config=ControllerConfig(
            resync_interval=1,
            poll_interval=60,
            max_concurrent_reconciles=2,
            backoff_base_delay=1,
            backoff_max_delay=60,
            backoff_jitter_factor=0.0,
        ),
        github_config=GitHubConfig(api_base_url="https://github.example.com/api"),
    )


@pytest.fixture
def sample_team():
    """Sample Team resource as returned by the API server."""
    return {
        "apiVersion": "org.github.crossplane.io/v1alpha1",
        "kind": "Team",
        "metadata": {
            "name": "platform",
            "uid": "team-uid-1",
            "generation": 1,
            "resourceVersion": "100",
            "annotations": {"crossplane.io/external-name": "platform"},
            "finalizers": ["finalizer.managedresource.crossplane.io"],
        },
        "spec": {
            "forProvider": {
                "org": "acme",
                "description": "Platform engineering",
                "privacy": "closed",
            },
            "providerConfigRef": {"name": "default"},
        },
    }


@pytest.fixture
def sample_membership():
    """Sample Membership resource as returned by the API server."""
    return {
        "apiVersion": "org.github.crossplane.io/v1alpha1",
        "kind": "Membership",
        "metadata": {
            "name": "platform-octocat",
            "uid": "membership-uid-1",
            "generation": 1,
            "annotations": {
                "crossplane.io/external-name": "platform-octocat",
            },
            "finalizers": ["finalizer.managedresource.crossplane.io"],
        },
        "spec": {
            "forProvider": {
                "org": "acme",
                "team": "platform",
                "user": "octocat",
            },
            "providerConfigRef": {"name": "default"},
        },
    }


@pytest.fixture
def sample_provider_config():
    """Sample ProviderConfig referencing a credentials Secret."""
    return {
        "apiVersion": "github.crossplane.io/v1alpha1",
        "kind": "ProviderConfig",
        "metadata": {"name": "default", "uid": "pc-uid-1"},
        "spec": {
            "credentials": {
                "source": "Secret",
                "secretRef": {
                    "namespace": "crossplane-system",
                    "name": "github-creds",
                    "key": "token",
                },
            }
        },
    }


@pytest.fixture
def sample_secret():
    """Sample credentials Secret holding a GitHub token."""
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "github-creds", "namespace": "crossplane-system"},
        "data": {"token": base64.b64encode(b"ghp_testtoken").decode()},
    }
