"""
Git client infrastructure for debsnapgit.

Provides a clean abstraction over git command execution and the
git-backed archive store the materializer commits into.
All git operations go through GitClient, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from business logic
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Tuple
import logging

from ..domain.instant import to_utc
from ..exit_codes import MaterializationError

logger = logging.getLogger(__name__)


class GitCommandError(Exception):
    """A git command exited non-zero or could not be run."""

    def __init__(self, args: List[str], returncode: int, stderr: str = ""):
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"'{' '.join(args)}' exited with {returncode}{detail}")


@dataclass
class GitCommit:
    """A git commit with metadata."""
    hash: str
    date: datetime
    author: str
    email: str
    message: str


class GitClient:
    """
    Abstraction over git commands.

    Example:
        client = GitClient()
        client.init("/path/to/archive")
        commits = client.log("/path/to/archive", limit=10)
    """

    def __init__(
        self,
        timeout: Optional[int] = 600,
        user_name: str = "debsnapgit",
        user_email: str = "debsnapgit@localhost",
    ):
        """
        Initialize GitClient.

        Args:
            timeout: Command timeout in seconds (None for no limit)
            user_name: Author and committer name for commits
            user_email: Author and committer email for commits
        """
        self.timeout = timeout
        self.user_name = user_name
        self.user_email = user_email

    def _run(
        self,
        args: List[str],
        cwd: str,
        check: bool = True,
        env: Optional[Dict[str, str]] = None,
    ) -> Tuple[str, int]:
        """
        Run a git command.

        Args:
            args: Arguments after "git"
            cwd: Working directory
            check: Raise GitCommandError on non-zero exit
            env: Extra environment variables

        Returns:
            Tuple of (stdout, returncode)
        """
        cmd = ["git"] + args
        logger.debug(f"Running command in '{cwd}': {' '.join(cmd)}")

        run_env = None
        if env:
            run_env = os.environ.copy()
            run_env.update(env)

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=run_env,
            )
        except subprocess.TimeoutExpired as e:
            raise GitCommandError(cmd, -1, f"timed out after {self.timeout}s") from e
        except OSError as e:
            raise GitCommandError(cmd, -1, str(e)) from e

        if check and result.returncode != 0:
            raise GitCommandError(cmd, result.returncode, result.stderr)

        return result.stdout.strip(), result.returncode

    def is_git_repo(self, path: str) -> bool:
        """Check if path is a git repository."""
        git_dir = Path(path) / ".git"
        return git_dir.exists()

    def init(self, path: str) -> bool:
        """
        Create a repository at path unless one exists.

        Returns:
            True if a repository was created
        """
        Path(path).mkdir(parents=True, exist_ok=True)
        if self.is_git_repo(path):
            return False
        self._run(["init", "--quiet"], cwd=path)
        logger.info(f"Initialized archive repository at {path}")
        return True

    def has_commits(self, path: str) -> bool:
        """Check whether HEAD points at a commit."""
        _, code = self._run(["rev-parse", "--verify", "--quiet", "HEAD"], cwd=path, check=False)
        return code == 0

    def add_all(self, path: str) -> None:
        """Stage additions, modifications and deletions."""
        self._run(["add", "--all", "."], cwd=path)

    def commit(self, path: str, message: str, date: Optional[datetime] = None) -> str:
        """
        Commit the index, even if nothing changed.

        Args:
            path: Path to git repository
            message: Commit message
            date: Author and committer date (defaults to now)

        Returns:
            Hash of the new commit
        """
        env = {
            "GIT_AUTHOR_NAME": self.user_name,
            "GIT_AUTHOR_EMAIL": self.user_email,
            "GIT_COMMITTER_NAME": self.user_name,
            "GIT_COMMITTER_EMAIL": self.user_email,
        }
        if date is not None:
            # git internal date format: "<unix timestamp> <offset>"
            stamp = f"{int(to_utc(date).timestamp())} +0000"
            env["GIT_AUTHOR_DATE"] = stamp
            env["GIT_COMMITTER_DATE"] = stamp

        self._run(
            ["-c", "commit.gpgsign=false",
             "commit", "--quiet", "--allow-empty", "--no-verify", "-m", message],
            cwd=path,
            env=env,
        )
        output, _ = self._run(["rev-parse", "HEAD"], cwd=path)
        return output

    def reset_hard(self, path: str) -> None:
        """Discard uncommitted changes, tracked and untracked."""
        if self.has_commits(path):
            self._run(["reset", "--quiet", "--hard", "HEAD"], cwd=path)
        else:
            self._run(["rm", "-r", "--cached", "--quiet", "--ignore-unmatch", "."], cwd=path)
        self._run(["clean", "-fdxq"], cwd=path)

    def log(self, path: str, limit: Optional[int] = 50) -> List[GitCommit]:
        """
        Get commit log, newest first.

        Args:
            path: Path to git repository
            limit: Maximum commits to return (None for all)

        Returns:
            List of GitCommit objects
        """
        if not self.has_commits(path):
            return []

        args = ["log", "--format=%H|%aI|%an|%ae|%s"]
        if limit:
            args.append(f"-n{limit}")

        output, _ = self._run(args, cwd=path)
        if not output:
            return []

        commits = []
        for line in output.split('\n'):
            if not line or '|' not in line:
                continue

            parts = line.split('|', 4)
            if len(parts) < 5:
                continue

            try:
                date = datetime.fromisoformat(parts[1].strip().replace('Z', '+00:00'))
            except ValueError:
                logger.debug(f"Unparseable commit date in: {line}")
                continue

            commits.append(GitCommit(
                hash=parts[0].strip(),
                date=date,
                author=parts[2].strip(),
                email=parts[3].strip(),
                message=parts[4].strip(),
            ))

        return commits


class ArchiveStore(Protocol):
    """A versioned tree that takes one full snapshot per commit."""

    def ensure_repository(self) -> None:
        ...

    def commit_snapshot(
        self,
        files: Iterable[Tuple[str, bytes]],
        message: str,
        when: datetime,
    ) -> str:
        ...


class GitArchiveStore:
    """
    Git working tree holding the materialized archive.

    Each commit_snapshot() replaces the whole tree: everything but .git is
    removed, the new files are written, and the result is committed. If
    anything fails the tree is restored to HEAD before the error is
    raised, so a failed snapshot never leaves partial state behind.
    """

    def __init__(self, path, git: Optional[GitClient] = None):
        self.path = Path(path).expanduser()
        self.git = git or GitClient()

    def ensure_repository(self) -> None:
        try:
            self.git.init(str(self.path))
        except (OSError, GitCommandError) as e:
            raise MaterializationError(
                str(e), operation="init", path=str(self.path)
            ) from e

    def clear(self) -> None:
        """Remove every entry of the working tree except .git."""
        for entry in self.path.iterdir():
            if entry.name == ".git":
                continue
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()

    def write_file(self, relative_path: str, data: bytes) -> None:
        """
        Write data below the working tree.

        Raises:
            MaterializationError: If relative_path leads outside the tree
        """
        target = self.path / relative_path
        root = self.path.resolve()
        resolved = target.resolve()
        if resolved == root or not resolved.is_relative_to(root):
            raise MaterializationError(
                "path leads outside the archive tree",
                operation="materialize", path=relative_path,
            )
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'wb') as f:
            f.write(data)

    def commit_snapshot(
        self,
        files: Iterable[Tuple[str, bytes]],
        message: str,
        when: datetime,
    ) -> str:
        """
        Replace the tree with files and commit it.

        Returns:
            Hash of the new commit

        Raises:
            MaterializationError: If any filesystem or git step fails
        """
        current = None
        try:
            self.clear()
            for current, data in files:
                self.write_file(current, data)
            current = None
            self.git.add_all(str(self.path))
            return self.git.commit(str(self.path), message, date=when)
        except (OSError, GitCommandError) as e:
            self._restore()
            raise MaterializationError(
                str(e),
                operation="materialize",
                instant=when,
                path=str(self.path / current) if current else str(self.path),
            ) from e
        except BaseException:
            self._restore()
            raise

    def _restore(self) -> None:
        try:
            self.git.reset_hard(str(self.path))
        except GitCommandError as e:
            logger.error(f"Could not restore {self.path} to HEAD: {e}")
