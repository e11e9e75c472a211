"""Retrieval of source trees: shallow git clones and local directories."""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Mapping, Optional

from ..errors import (
    RetrievalAuthFailure,
    RetrievalError,
    RetrievalOtherFailure,
    RetrievalTimeout,
    UnsafeCleanupError,
)
from ..logging import get_logger
from ..models import SourceReference

CLONE_TIMEOUT_SECONDS = 60.0

_TEMP_PREFIX = "skillsync-"

_SSH_CONVERTIBLE = re.compile(r"^https://(github\.com|gitlab\.com)/(.+)$")
_DISPLAY_PREFIX = re.compile(r"^(https?://|git@|ssh://)")

_AUTH_SIGNATURES = (
    "Authentication failed",
    "could not read Username",
    "Permission denied",
    "Repository not found",
)
_TIMEOUT_SIGNATURES = ("timed out",)


class Transport(str, Enum):
    """Transports attempted so far for one retrieval."""

    HTTPS = "https"
    SSH = "ssh"
    BOTH = "both"


@dataclass(frozen=True)
class CloneAttempt:
    """One step of the clone plan: the URL to use and what has been tried by then."""

    url: str
    transports_tried: Transport


def https_to_ssh_url(url: str) -> Optional[str]:
    """Convert a GitHub/GitLab HTTPS URL to ``git@host:path``; None for other hosts."""
    match = _SSH_CONVERTIBLE.match(url)
    if not match:
        return None
    return f"git@{match.group(1)}:{match.group(2)}"


def display_url(url: str) -> str:
    """Return ``host/owner/repo`` for any of the URL shapes we clone from."""
    cleaned = _DISPLAY_PREFIX.sub("", url)
    if cleaned.endswith(".git"):
        cleaned = cleaned[: -len(".git")]
    return cleaned.replace(":", "/", 1)


def format_auth_troubleshooting_guide(url: str, transport: Transport | str) -> str:
    """Build the numbered troubleshooting steps for an authentication failure."""
    transport = Transport(transport)
    shown = display_url(url)
    host = shown.split("/", 1)[0] or "github.com"

    lines = [
        f"Authentication failed for {shown}.",
        "",
        "  Troubleshooting steps:",
        "",
        "    1. Verify the repository exists and you have access.",
        "",
    ]

    step = 2
    if transport in (Transport.HTTPS, Transport.BOTH):
        lines.extend(
            [
                f"    {step}. HTTPS - check your credential state:",
                "         gh auth status",
                "         gh auth login",
                "",
            ]
        )
        step += 1

    if transport in (Transport.SSH, Transport.BOTH):
        lines.extend(
            [
                f"    {step}. SSH - check your key state:",
                "         ssh-add -l                     # list loaded keys",
                f"         ssh -T git@{host}          # test the connection",
                "",
            ]
        )
        step += 1

    if transport is Transport.BOTH:
        lines.extend(
            [
                f"    {step}. If using corporate SSO, make sure your SSH key or",
                "       token has been authorized for your organization.",
            ]
        )

    return "\n".join(lines).rstrip()


class Retriever:
    """Produces a local tree for a source reference and cleans up after it."""

    def __init__(
        self,
        runner: Callable[..., str] | None = None,
        *,
        timeout: float = CLONE_TIMEOUT_SECONDS,
    ) -> None:
        self._runner = runner or self._default_runner
        self.timeout = timeout
        self.logger = get_logger("git.clone")

    def retrieve(self, reference: SourceReference, *, use_ssh: bool = False) -> Path:
        """Return a directory holding the referenced content.

        Remote trees live in a fresh temporary directory that the caller must
        hand back to :meth:`release`. Local paths are returned as-is.
        """
        if not reference.is_remote:
            return self._resolve_local(reference)
        return self.clone(reference.url, reference.ref, use_ssh=use_ssh)

    @contextmanager
    def checkout(self, reference: SourceReference, *, use_ssh: bool = False) -> Iterator[Path]:
        """Context manager around :meth:`retrieve` that always releases the tree."""
        path = self.retrieve(reference, use_ssh=use_ssh)
        try:
            yield path
        finally:
            if reference.is_remote:
                self._release_quietly(path)

    def clone(self, url: str, ref: str | None = None, *, use_ssh: bool = False) -> Path:
        """Shallow-clone ``url`` following the HTTPS-then-SSH attempt plan."""
        plan = self.attempt_plan(url, use_ssh=use_ssh)
        for attempt in plan[:-1]:
            try:
                return self._attempt(attempt, ref, original_url=url)
            except RetrievalAuthFailure:
                self.logger.warning("HTTPS authentication failed for %s, retrying with SSH", display_url(url))
        return self._attempt(plan[-1], ref, original_url=url)

    @staticmethod
    def attempt_plan(url: str, *, use_ssh: bool = False) -> List[CloneAttempt]:
        """Return the ordered clone attempts for ``url``.

        Explicit SSH mode converts up front and tries nothing else. Otherwise
        HTTPS goes first and, for hosts with a known SSH form, an SSH attempt
        follows that only runs after an authentication failure.
        """
        ssh_url = https_to_ssh_url(url)
        if use_ssh:
            return [CloneAttempt(url=ssh_url or url, transports_tried=Transport.SSH)]
        plan = [CloneAttempt(url=url, transports_tried=Transport.HTTPS)]
        if ssh_url is not None:
            plan.append(CloneAttempt(url=ssh_url, transports_tried=Transport.BOTH))
        return plan

    def release(self, path: Path | str) -> None:
        """Delete a retrieved temporary tree.

        Refuses anything that does not resolve to a location strictly inside
        the system temp directory.
        """
        resolved = Path(os.path.realpath(path))
        temp_root = Path(os.path.realpath(tempfile.gettempdir()))
        if resolved == temp_root or temp_root not in resolved.parents:
            raise UnsafeCleanupError(
                f"Refusing to remove {resolved}: it is outside the system temp directory {temp_root}"
            )
        shutil.rmtree(resolved, ignore_errors=True)
        self.logger.debug("Released %s", resolved)

    # ------------------------------------------------------------------
    # Internals

    def _release_quietly(self, path: Path) -> None:
        try:
            self.release(path)
        except UnsafeCleanupError as exc:
            self.logger.error("%s", exc)

    def _resolve_local(self, reference: SourceReference) -> Path:
        path = Path(reference.url).expanduser().resolve()
        if not path.exists():
            raise RetrievalOtherFailure(f"Local source path not found: {path}", reference.url)
        if not path.is_dir():
            raise RetrievalOtherFailure(f"Local source path is not a directory: {path}", reference.url)
        self.logger.debug("Using local source %s", path)
        return path

    def _attempt(self, attempt: CloneAttempt, ref: str | None, *, original_url: str) -> Path:
        temp_dir = Path(tempfile.mkdtemp(prefix=_TEMP_PREFIX))
        args = ["git", "clone", "--depth", "1"]
        if ref:
            args.extend(["--branch", ref])
        args.extend([attempt.url, str(temp_dir)])

        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"

        self.logger.info("Cloning %s%s", attempt.url, f" ({ref})" if ref else "")
        transport = attempt.transports_tried
        try:
            self._run(args, env=env)
        except subprocess.TimeoutExpired:
            _discard(temp_dir)
            raise RetrievalTimeout(self._timeout_message(original_url, transport), original_url, transport.value)
        except subprocess.CalledProcessError as exc:
            _discard(temp_dir)
            raise self._classify(exc, attempt, original_url) from exc
        except OSError as exc:
            _discard(temp_dir)
            raise RetrievalOtherFailure(
                f"Failed to clone {attempt.url}: {exc}", original_url, transport.value
            ) from exc
        except Exception:
            _discard(temp_dir)
            raise
        return temp_dir

    def _classify(
        self, exc: subprocess.CalledProcessError, attempt: CloneAttempt, original_url: str
    ) -> RetrievalError:
        message = _error_text(exc)
        transport = attempt.transports_tried
        if any(signature in message for signature in _TIMEOUT_SIGNATURES):
            return RetrievalTimeout(self._timeout_message(original_url, transport), original_url, transport.value)
        if any(signature in message for signature in _AUTH_SIGNATURES):
            return RetrievalAuthFailure(
                format_auth_troubleshooting_guide(original_url, transport), original_url, transport.value
            )
        return RetrievalOtherFailure(f"Failed to clone {attempt.url}: {message}", original_url, transport.value)

    def _timeout_message(self, url: str, transport: Transport) -> str:
        return (
            f"Clone timed out after {self.timeout:g} s - this often happens with private repos.\n"
            f"{format_auth_troubleshooting_guide(url, transport)}"
        )

    def _run(self, args: Iterable[str], *, env: Mapping[str, str] | None = None) -> str:
        return self._runner(args, timeout=self.timeout, env=env)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str:
        completed = subprocess.run(
            list(args),
            env=dict(env) if env is not None else None,
            check=True,
            text=True,
            capture_output=True,
            timeout=timeout,
        )
        return completed.stdout


def _error_text(exc: subprocess.CalledProcessError) -> str:
    parts = [part for part in (exc.stderr, exc.stdout) if isinstance(part, str) and part.strip()]
    if parts:
        return "\n".join(part.strip() for part in parts)
    return str(exc)


def _discard(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)


__all__ = [
    "CLONE_TIMEOUT_SECONDS",
    "CloneAttempt",
    "Retriever",
    "Transport",
    "display_url",
    "format_auth_troubleshooting_guide",
    "https_to_ssh_url",
]
