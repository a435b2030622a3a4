"""
Configuration module for the GitHub provider.

Loads configuration from environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class KubernetesConfig:
    """Kubernetes API server connection configuration."""

    api_url: str = ""
    token: str = field(default="", repr=False)  # Never log token
    kubeconfig: str = ""
    context: str = ""
    in_cluster: bool = False
    verify_ssl: bool = True
    event_namespace: str = "default"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            api_url=os.getenv("KUBE_API_URL", ""),
            token=os.getenv("KUBE_TOKEN", ""),
            kubeconfig=os.getenv("KUBECONFIG", ""),
            context=os.getenv("KUBE_CONTEXT", ""),
            in_cluster=os.getenv("KUBE_IN_CLUSTER", "false").lower() == "true",
            verify_ssl=os.getenv("KUBE_VERIFY_SSL", "true").lower() == "true",
            event_namespace=os.getenv("EVENT_NAMESPACE", "default"),
        )


@dataclass
class GitHubConfig:
    """GitHub REST API configuration."""

    api_base_url: str = "https://api.github.com"
    timeout: int = 30  # seconds per request

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            api_base_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            timeout=int(os.getenv("GITHUB_TIMEOUT", "30")),
        )


@dataclass
class ControllerConfig:
    """Managed resource reconciliation configuration."""

    resync_interval: int = 10  # seconds between listing resources
    poll_interval: int = 60  # seconds between observations of a synced resource
    max_concurrent_reconciles: int = 5

    # Exponential backoff configuration
    backoff_base_delay: int = 1  # base delay in seconds
    backoff_max_delay: int = 60  # max delay in seconds
    backoff_jitter_factor: float = 0.1  # ±10% jitter

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            resync_interval=int(os.getenv("RESYNC_INTERVAL", "10")),
            poll_interval=int(os.getenv("POLL_INTERVAL", "60")),
            max_concurrent_reconciles=int(os.getenv("MAX_CONCURRENT_RECONCILES", "5")),
            backoff_base_delay=int(os.getenv("BACKOFF_BASE_DELAY", "1")),
            backoff_max_delay=int(os.getenv("BACKOFF_MAX_DELAY", "60")),
            backoff_jitter_factor=float(os.getenv("BACKOFF_JITTER_FACTOR", "0.1")),
        )


@dataclass
class APIConfig:
    """Status API server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("API_PORT", "8080")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


@dataclass
class Config:
    """Main configuration object."""

    kubernetes: KubernetesConfig
    github: GitHubConfig
    controller: ControllerConfig
    api: APIConfig

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            kubernetes=KubernetesConfig.from_env(),
            github=GitHubConfig.from_env(),
            controller=ControllerConfig.from_env(),
            api=APIConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            kubernetes=KubernetesConfig(),
            github=GitHubConfig(),
            controller=ControllerConfig(),
            api=APIConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
