"""
Git helper utilities.

Reads repository metadata (remotes, branches) from a local clone using the
git command line.
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path


@dataclass
class GitRemote:
    """A configured git remote."""

    name: str
    fetch_url: str


class GitHelper:
    """
    Read-only helper around the ``git`` executable of a local clone.

    Example:
        ```python
        from deliverygraph.git import GitHelper

        git = GitHelper("./my-repo")
        remote_url = git.get_remote_url()
        ```
    """

    def __init__(self, repo_path: str | Path = ".") -> None:
        """
        Initialize GitHelper for a local repository.

        Args:
            repo_path: Path to the local clone
        """
        self.repo_path = Path(repo_path)

    def list_remotes(self) -> list[GitRemote]:
        """
        List the fetch URL of every configured remote.

        Returns:
            Remotes in ``git remote -v`` order, without duplicates

        Raises:
            subprocess.CalledProcessError: If the path is not a git repository
        """
        output = self._run_git("remote", "-v")
        remotes: list[GitRemote] = []
        seen: set[str] = set()
        for line in output.splitlines():
            parts = line.split()
            if len(parts) < 3 or parts[2] != "(fetch)":
                continue
            if parts[0] in seen:
                continue
            seen.add(parts[0])
            remotes.append(GitRemote(name=parts[0], fetch_url=parts[1]))
        return remotes

    def get_remote_url(self, preferred: str = "origin") -> str | None:
        """
        Get the fetch URL of the preferred remote, or of the first remote.

        Args:
            preferred: Remote name to look for first (default: "origin")

        Returns:
            Remote URL, or None when the repository has no remote
        """
        remotes = self.list_remotes()
        if not remotes:
            return None
        for remote in remotes:
            if remote.name == preferred:
                return remote.fetch_url
        return remotes[0].fetch_url

    def _run_git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.repo_path,
            check=True,
            capture_output=True,
            text=True,
        )
        return result.stdout
