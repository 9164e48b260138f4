"""
Configuration management with YAML loading and environment variable support.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import quote

import yaml

DEFAULT_BROWSER_URL = "http://localhost:8080/alfresco/api/-default-/public/cmis/versions/1.1/browser"
DEFAULT_ALFRESCO_URL = "http://localhost:8080/alfresco/service/"
DEFAULT_SHARE_URL = "http://localhost:8081/share/"


def _env(env_var: str, default: str) -> str:
    """Get value from environment variable or return default."""
    return os.environ.get(env_var) or default


@dataclass
class RepositoryConfig:
    """Alfresco connection - credentials can be overridden via environment variables."""

    browser_url: str = field(default_factory=lambda: _env("AKS_REPOSITORY_URL", DEFAULT_BROWSER_URL))
    user: str = field(default_factory=lambda: _env("AKS_USER", "admin"))
    password: str = field(default_factory=lambda: _env("AKS_PASSWORD", "admin"))
    # First repository advertised by the server if not set
    repository_id: str | None = None
    timeout: float = 30.0


@dataclass
class EndpointsConfig:
    """Alfresco and Share HTTP endpoints."""

    alfresco_base_url: str = field(default_factory=lambda: _env("AKS_ALFRESCO_URL", DEFAULT_ALFRESCO_URL))
    share_base_url: str = field(default_factory=lambda: _env("AKS_SHARE_URL", DEFAULT_SHARE_URL))

    @property
    def module_upload_url(self) -> str:
        return _join(self.share_base_url, "page/modules/module")

    def module_delete_url(self, module_id: str) -> str:
        return _join(self.share_base_url, f"page/modules/module/delete?moduleId={quote(module_id, safe='')}")

    @property
    def workflow_instances_url(self) -> str:
        return _join(self.alfresco_base_url, "api/workflow-instances")


@dataclass
class FoldersConfig:
    workflow_definitions: str = "/Data Dictionary/Workflow Definitions"
    models: str = "/Data Dictionary/Models"


@dataclass
class DeployConfig:
    # Every user task is assigned to this account on deploy
    default_assignee: str = "admin"
    drain_page_size: int = 50
    max_drain_rounds: int = 100


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file_logging: bool = False
    console_logging: bool = True
    log_file: Path | None = None


SECTIONS = ["repository", "endpoints", "folders", "deploy", "logging"]


@dataclass
class AppConfig:
    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    endpoints: EndpointsConfig = field(default_factory=EndpointsConfig)
    folders: FoldersConfig = field(default_factory=FoldersConfig)
    deploy: DeployConfig = field(default_factory=DeployConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "AppConfig":
        """Create config from dictionary."""
        config = cls()

        for attr in SECTIONS:
            if attr not in data or not data[attr]:
                continue
            section = getattr(config, attr)
            for key, value in data[attr].items():
                if hasattr(section, key):
                    setattr(section, key, value)

        if isinstance(config.logging.log_file, str):
            config.logging.log_file = Path(config.logging.log_file)

        return config

    def _to_dict(self) -> dict:
        """Convert config to dictionary."""
        result = {}
        for attr in SECTIONS:
            section = getattr(self, attr)
            result[attr] = {
                key: str(value) if isinstance(value, Path) else value for key, value in vars(section).items()
            }
        return result


def _join(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{path}"


def _get_default_config_dir() -> Path:
    """Get default config directory."""
    # Check environment variable first
    if config_dir := os.environ.get("AKS_CONFIG_DIR"):
        return Path(config_dir)

    # Check XDG config home
    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "alfresco-kickstart"

    # Fall back to ~/.config
    return Path.home() / ".config" / "alfresco-kickstart"


def load_config(config_path: Path | None = None, config_dir: Path | None = None) -> AppConfig:
    """
    Load configuration.

    Args:
        config_path: Path to config file (default: searches standard locations)
        config_dir: Config directory to search

    Returns:
        AppConfig (defaults if no config file is found)
    """
    if config_dir is None:
        config_dir = _get_default_config_dir()

    if config_path is None:
        search_paths = [
            config_dir / "config.yaml",
            Path.cwd() / "aks.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    return AppConfig.from_yaml(config_path) if config_path else AppConfig()


def validate_config(config: AppConfig) -> list[str]:
    """
    Validate settings the orchestrator relies on.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    if not config.repository.browser_url:
        errors.append("repository.browser_url not configured (set AKS_REPOSITORY_URL or in config file)")
    if not config.repository.user:
        errors.append("repository.user not configured (set AKS_USER or in config file)")
    if not config.deploy.default_assignee:
        errors.append("deploy.default_assignee must not be empty")
    if config.deploy.drain_page_size < 1:
        errors.append(f"deploy.drain_page_size must be positive: {config.deploy.drain_page_size}")
    if config.deploy.max_drain_rounds < 1:
        errors.append(f"deploy.max_drain_rounds must be positive: {config.deploy.max_drain_rounds}")
    for name in ("workflow_definitions", "models"):
        if not getattr(config.folders, name).startswith("/"):
            errors.append(f"folders.{name} must be an absolute repository path")
    return errors
