"""
Tests for configuration records, secret stores and environment settings.
"""

import subprocess
from unittest.mock import patch

import pytest

from deliverygraph.config import (
    BranchConfig,
    EnvSecretStore,
    ProjectConfig,
    ProviderSettings,
    StaticConfigSource,
)
from deliverygraph.exceptions import ConfigurationError
from deliverygraph.git import GitHelper, GitRemote


class TestProviderSettings:
    """Environment-driven provider settings."""

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("DELIVERYGRAPH_REMOTE_URL", "git@github.com:acme/app.git")
        monkeypatch.setenv("DELIVERYGRAPH_TIMEOUT", "12.5")

        settings = ProviderSettings.from_env()

        assert settings.remote_url == "git@github.com:acme/app.git"
        assert settings.timeout == 12.5
        assert settings.retry_config.max_retries == 3

    def test_remote_read_from_local_clone(self, monkeypatch) -> None:
        monkeypatch.delenv("DELIVERYGRAPH_REMOTE_URL", raising=False)
        monkeypatch.delenv("DELIVERYGRAPH_TIMEOUT", raising=False)
        monkeypatch.setenv("DELIVERYGRAPH_REPO_PATH", "/srv/app")

        with patch("deliverygraph.config.GitHelper") as helper:
            helper.return_value.get_remote_url.return_value = "https://gitlab.com/acme/app.git"
            settings = ProviderSettings.from_env()

        helper.assert_called_once_with("/srv/app")
        assert settings.remote_url == "https://gitlab.com/acme/app.git"
        assert settings.timeout == 30.0

    def test_unreadable_clone(self, monkeypatch) -> None:
        monkeypatch.delenv("DELIVERYGRAPH_REMOTE_URL", raising=False)

        with patch("deliverygraph.config.GitHelper") as helper:
            helper.return_value.get_remote_url.side_effect = subprocess.CalledProcessError(128, "git")
            with pytest.raises(ConfigurationError) as exc_info:
                ProviderSettings.from_env()

        assert "Unable to read git remote" in exc_info.value.message

    @pytest.mark.parametrize("value", ["soon", "0", "-5"])
    def test_invalid_timeout(self, monkeypatch, value) -> None:
        monkeypatch.setenv("DELIVERYGRAPH_REMOTE_URL", "git@github.com:acme/app.git")
        monkeypatch.setenv("DELIVERYGRAPH_TIMEOUT", value)

        with pytest.raises(ConfigurationError):
            ProviderSettings.from_env()


class TestSecretsAndSources:
    """Secret store and static configuration source."""

    def test_env_secret_store(self) -> None:
        store = EnvSecretStore({"GITLAB_COM_TOKEN": "glpat-x", "EMPTY_TOKEN": ""})

        assert store.get_secret("GITLAB_COM_TOKEN") == "glpat-x"
        assert store.get_secret("EMPTY_TOKEN") is None
        assert store.get_secret("MISSING") is None

    def test_env_secret_store_defaults_to_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("GITHUB_COM_TOKEN", "ghp_env")

        assert EnvSecretStore().get_secret("GITHUB_COM_TOKEN") == "ghp_env"

    def test_static_source(self) -> None:
        project = ProjectConfig(development_branch="integration")
        source = StaticConfigSource([BranchConfig("main")], project, key_files=["main"])

        assert [config.branch_name for config in source.list_branch_configs()] == ["main"]
        assert source.get_project_config() is project
        assert source.has_key_file("main")
        assert not source.has_key_file("uat")

    def test_static_source_assumes_key_files(self) -> None:
        source = StaticConfigSource([BranchConfig("main")])

        assert source.has_key_file("anything")
        assert source.get_project_config() == ProjectConfig()


class TestGitHelper:
    """Remote listing from ``git remote -v``."""

    REMOTES = (
        "upstream\thttps://github.com/acme/app.git (fetch)\n"
        "upstream\thttps://github.com/acme/app.git (push)\n"
        "origin\tgit@github.com:me/app.git (fetch)\n"
        "origin\tgit@github.com:me/app.git (push)\n"
    )

    def test_list_remotes(self) -> None:
        with patch.object(GitHelper, "_run_git", return_value=self.REMOTES):
            remotes = GitHelper("/srv/app").list_remotes()

        assert remotes == [
            GitRemote("upstream", "https://github.com/acme/app.git"),
            GitRemote("origin", "git@github.com:me/app.git"),
        ]

    def test_prefers_origin(self) -> None:
        with patch.object(GitHelper, "_run_git", return_value=self.REMOTES):
            assert GitHelper().get_remote_url() == "git@github.com:me/app.git"
            assert GitHelper().get_remote_url("upstream") == "https://github.com/acme/app.git"
            assert GitHelper().get_remote_url("missing") == "https://github.com/acme/app.git"

    def test_no_remote(self) -> None:
        with patch.object(GitHelper, "_run_git", return_value=""):
            assert GitHelper().get_remote_url() is None
