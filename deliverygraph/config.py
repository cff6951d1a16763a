"""
Configuration records and sources.

Branch and project settings arrive as already-parsed records; this module
defines their shape, the source protocol the topology builder reads from,
the secret store used for provider tokens and the environment-driven
provider settings.
"""

import os
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from deliverygraph.exceptions import ConfigurationError
from deliverygraph.git import GitHelper
from deliverygraph.transport import RetryConfig


@dataclass
class BranchConfig:
    """Per-branch configuration record."""

    branch_name: str
    merge_targets: list[str] | None = None
    alias: str | None = None
    deploy_target_url: str | None = None


@dataclass
class ProjectConfig:
    """Project-level configuration checked once per topology build."""

    manual_actions_file_url: str | None = None
    development_branch: str | None = None
    available_target_branches: list[str] = field(default_factory=list)


class ConfigSource(Protocol):
    """Where branch and project configuration records come from."""

    def list_branch_configs(self) -> list[BranchConfig]: ...

    def get_project_config(self) -> ProjectConfig: ...

    def has_key_file(self, branch_name: str) -> bool: ...


class StaticConfigSource:
    """
    In-memory configuration source.

    Example:
        ```python
        source = StaticConfigSource(
            branches=[
                BranchConfig("main"),
                BranchConfig("preprod", merge_targets=["main"]),
            ],
            project=ProjectConfig(development_branch="integration"),
        )
        ```
    """

    def __init__(
        self,
        branches: Iterable[BranchConfig],
        project: ProjectConfig | None = None,
        key_files: Iterable[str] | None = None,
    ) -> None:
        """
        Args:
            branches: Branch configuration records
            project: Project configuration (default: empty)
            key_files: Branch names owning a credential key file. When None,
                every branch is considered to have one.
        """
        self._branches = list(branches)
        self._project = project or ProjectConfig()
        self._key_files = set(key_files) if key_files is not None else None

    def list_branch_configs(self) -> list[BranchConfig]:
        return list(self._branches)

    def get_project_config(self) -> ProjectConfig:
        return self._project

    def has_key_file(self, branch_name: str) -> bool:
        if self._key_files is None:
            return True
        return branch_name in self._key_files


class SecretStore(Protocol):
    """Opaque credential storage."""

    def get_secret(self, key: str) -> str | None: ...


class EnvSecretStore:
    """Secret store backed by environment variables."""

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def get_secret(self, key: str) -> str | None:
        return self._environ.get(key) or None


@dataclass
class ProviderSettings:
    """Settings used to resolve and talk to the git hosting provider."""

    remote_url: str | None = None
    timeout: float = 30.0
    retry_config: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        """
        Create settings from environment variables.

        Environment variables:
            DELIVERYGRAPH_REMOTE_URL: Git remote URL of the repository (optional,
                default: remote of the local clone)
            DELIVERYGRAPH_REPO_PATH: Local clone used when no remote URL is set
                (optional, default: current directory)
            DELIVERYGRAPH_TIMEOUT: Provider request timeout in seconds
                (optional, default: 30)

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        remote_url = os.environ.get("DELIVERYGRAPH_REMOTE_URL")
        if not remote_url:
            repo_path = os.environ.get("DELIVERYGRAPH_REPO_PATH", ".")
            try:
                remote_url = GitHelper(repo_path).get_remote_url()
            except (OSError, subprocess.CalledProcessError) as e:
                raise ConfigurationError(
                    f"Unable to read git remote of {repo_path}: {e}"
                ) from e

        timeout_str = os.environ.get("DELIVERYGRAPH_TIMEOUT", "30")
        try:
            timeout = float(timeout_str)
        except ValueError:
            raise ConfigurationError(
                f"Invalid DELIVERYGRAPH_TIMEOUT: {timeout_str}. Must be a number of seconds"
            )
        if timeout <= 0:
            raise ConfigurationError("DELIVERYGRAPH_TIMEOUT must be positive")

        return cls(remote_url=remote_url, timeout=timeout)
