"""Git repository source — clone or open a repository on local disk.

Security requirements:
- shell=False always (no command injection).
- URL scheme whitelist: https://, http://, git@ only.
- Credentials travel to git as an HTTP Authorization header in the child
  process environment; never on the command line, never in .git/config,
  never logged, never in error output.
- Only directories created by this module are ever removed.
"""

from __future__ import annotations

import base64
import os
import shutil
import subprocess
import tempfile
import urllib.parse
from pathlib import Path

from repowiki.observability import get_logger, sanitise_url
from repowiki.sources.base import IngestionError, ResolvedRepository

log = get_logger(__name__)

# URL schemes that are allowed for remote git repositories.
_ALLOWED_SCHEMES = {"https", "http"}
_GIT_SSH_PREFIX = "git@"


class GitSource:
    """Materialise git repositories under a workspace directory.

    Clones land in ``<workspace>/<organization>/<name>``. A directory that is
    already a clone is reused: it is fetched and reset to the remote head of
    the requested branch (or of the branch it is on).

    Private repos over HTTPS use the record's username/secret, falling back to
    the ``GIT_TOKEN`` env var. SSH repos (``git@`` URLs) use system SSH keys.
    """

    def __init__(self, workspace: Path | str) -> None:
        self.workspace = Path(workspace)

    def resolve(
        self,
        address: str,
        username: str | None = None,
        secret: str | None = None,
        branch: str | None = None,
    ) -> ResolvedRepository:
        """Clone (or refresh) *address* and return its resolved metadata.

        Raises:
            IngestionError: On a disallowed URL, a target directory that is not
                a clone, a failed clone/fetch/checkout, or an unresolvable HEAD.
        """
        self._validate_url(address)
        organization, name = self.parse_address(address)
        target = self.workspace / organization / name
        env = self._git_env(address, username, secret)

        if (target / ".git").exists():
            log.info("repository_open", address=sanitise_url(address), path=str(target))
            self._update(str(target), branch, address, env)
        elif target.exists() and any(target.iterdir()):
            raise IngestionError(f"{target} exists and is not a git repository")
        else:
            log.info("repository_clone", address=sanitise_url(address), path=str(target))
            self._clone_into(target, address, branch, env)

        return ResolvedRepository(
            name=name,
            branch=self._git(str(target), ["rev-parse", "--abbrev-ref", "HEAD"], address),
            revision=self._git(str(target), ["rev-parse", "HEAD"], address),
            organization=organization,
            local_path=str(target),
        )

    # ------------------------------------------------------------------
    # Address handling
    # ------------------------------------------------------------------

    @staticmethod
    def parse_address(address: str) -> tuple[str, str]:
        """Return ``(organization, name)`` from the last two path segments.

        >>> GitSource.parse_address("https://github.com/acme/widgets.git")
        ('acme', 'widgets')
        >>> GitSource.parse_address("git@github.com:acme/widgets.git")
        ('acme', 'widgets')
        """
        if address.startswith(_GIT_SSH_PREFIX):
            path = address.split(":", 1)[-1]
        elif "://" in address:
            path = urllib.parse.urlparse(address).path
        else:
            path = address
        parts = [p for p in path.replace("\\", "/").split("/") if p]
        if not parts:
            raise IngestionError(f"Cannot derive a repository name from {sanitise_url(address)}")
        name = parts[-1].removesuffix(".git")
        organization = parts[-2] if len(parts) > 1 else name
        return organization, name

    @staticmethod
    def _validate_url(url: str) -> None:
        """Raise IngestionError if *url* uses a disallowed scheme."""
        if url.startswith(_GIT_SSH_PREFIX):
            return  # git@ SSH, allowed
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme not in _ALLOWED_SCHEMES:
            raise IngestionError(
                f"Unsupported URL scheme '{parsed.scheme}'. "
                f"Allowed: https://, http://, git@"
            )

    @staticmethod
    def _git_env(url: str, username: str | None, secret: str | None) -> dict[str, str]:
        """Return the environment for git child processes working on *url*.

        Uses *username*/*secret* when given, else the ``GIT_TOKEN`` env var, as
        an ``http.extraHeader`` set through ``GIT_CONFIG_*`` variables. Git
        applies it to that invocation only and never writes it to disk.
        """
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        if not url.startswith(("https://", "http://")):
            return env
        if secret:
            userinfo = f"{username}:{secret}" if username else f"{secret}:"
        else:
            token = os.environ.get("GIT_TOKEN", "")
            userinfo = f"{token}:" if token else ""
        if not userinfo:
            return env

        encoded = base64.b64encode(userinfo.encode("utf-8")).decode("ascii")
        index = int(env.get("GIT_CONFIG_COUNT") or 0)
        env[f"GIT_CONFIG_KEY_{index}"] = "http.extraHeader"
        env[f"GIT_CONFIG_VALUE_{index}"] = f"Authorization: Basic {encoded}"
        env["GIT_CONFIG_COUNT"] = str(index + 1)
        return env

    # ------------------------------------------------------------------
    # git subprocess calls
    # ------------------------------------------------------------------

    def _clone_into(
        self, target: Path, address: str, branch: str | None, env: dict[str, str]
    ) -> None:
        """Clone into a temporary sibling of *target*, then move it into place."""
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = tempfile.mkdtemp(prefix=f".{target.name}-", dir=target.parent)
        try:
            self._clone(address, staging, branch, env)
        except IngestionError:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        try:
            os.replace(staging, target)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            if not (target / ".git").exists():
                raise IngestionError(f"Cannot move clone into {target}: {exc.strerror}") from None
            # Another worker finished the same clone first.
            log.info("repository_clone_reused", path=str(target))

    @staticmethod
    def _clone(address: str, target: str, branch: str | None, env: dict[str, str]) -> None:
        """Run git clone (shell=False). Raises IngestionError on failure."""
        cmd = ["git", "clone"]
        if branch:
            cmd += ["--branch", branch]
        cmd += ["--", address, target]
        try:
            subprocess.run(cmd, shell=False, check=True, capture_output=True, text=True, env=env)
        except subprocess.CalledProcessError as exc:
            # Strip credentials from stderr before surfacing in error message.
            stderr_safe = sanitise_url(exc.stderr or "").strip()
            raise IngestionError(
                f"git clone failed for {sanitise_url(address)}: {stderr_safe}"
            ) from None
        except FileNotFoundError:
            raise IngestionError("git executable not found on PATH") from None

    def _update(
        self, repo_path: str, branch: str | None, address: str, env: dict[str, str]
    ) -> None:
        """Fetch ``origin`` and reset the working tree to the remote branch head."""
        self._git(repo_path, ["fetch", "origin"], address, env)
        if branch:
            self._git(repo_path, ["checkout", branch], address, env)
        current = branch or self._git(repo_path, ["rev-parse", "--abbrev-ref", "HEAD"], address)
        if current == "HEAD":
            return  # detached, nothing to track
        self._git(repo_path, ["reset", "--hard", f"origin/{current}"], address, env)

    @staticmethod
    def _git(
        repo_path: str, args: list[str], address: str, env: dict[str, str] | None = None
    ) -> str:
        """Run ``git <args>`` inside *repo_path* and return stripped stdout."""
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=repo_path,
                shell=False,
                capture_output=True,
                text=True,
                check=True,
                env=env,
            )
        except subprocess.CalledProcessError as exc:
            stderr_safe = sanitise_url(exc.stderr or "").strip()
            raise IngestionError(
                f"git {args[0]} failed for {sanitise_url(address)}: {stderr_safe}"
            ) from None
        except FileNotFoundError:
            raise IngestionError("git executable not found on PATH") from None
        return result.stdout.strip()
