"""Parsing and serialization of source locator strings.

Supported locators::

    github:owner/repo[/sub/path][#ref]
    gitlab:owner/repo[/sub/path][#ref]
    git:https://host/repo.git[#ref]
    file:./relative/or/absolute/path

A bare ``owner/repo`` (no prefix, no ``://``) is GitHub shorthand. Without
``#ref`` the clone uses the remote's default branch.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple
from urllib.parse import urlparse

from .errors import InvalidSourceFormat
from .models import SourceKind, SourceReference

_HOSTED_BASES = {
    SourceKind.GITHUB: "https://github.com",
    SourceKind.GITLAB: "https://gitlab.com",
}

_HOSTED_URL_PATTERNS = {
    SourceKind.GITHUB: re.compile(r"github\.com/([^/]+)/([^/]+?)(?:\.git)?$"),
    SourceKind.GITLAB: re.compile(r"gitlab\.com/([^/]+)/([^/]+?)(?:\.git)?$"),
}

_SUPPORTED_FORMATS = (
    "  Supported formats:\n"
    "    github:owner/repo#ref        GitHub repo (or owner/repo shorthand)\n"
    "    gitlab:owner/repo#ref        GitLab repo\n"
    "    git:https://host/repo.git    Arbitrary git URL\n"
    "    file:./path/to/skill         Local directory\n"
)


def parse_source(source: str) -> SourceReference:
    """Return the structured reference for ``source``."""
    if source.startswith("github:"):
        return _parse_hosted(SourceKind.GITHUB, source[len("github:") :])
    if source.startswith("gitlab:"):
        return _parse_hosted(SourceKind.GITLAB, source[len("gitlab:") :])
    if source.startswith("git:"):
        base, ref = _split_ref(source[len("git:") :])
        url = base if base.endswith(".git") else f"{base}.git"
        return SourceReference(kind=SourceKind.GIT, url=url, ref=ref)
    if source.startswith("file:"):
        return SourceReference(kind=SourceKind.FILE, url=source[len("file:") :])

    if "://" not in source and "/" in source:
        return _parse_hosted(SourceKind.GITHUB, source)

    raise InvalidSourceFormat(f'Unknown source format: "{source}".\n\n{_SUPPORTED_FORMATS}')


def format_source(reference: SourceReference, subpath: Optional[str] = None) -> str:
    """Serialize ``reference`` back into a locator string.

    ``subpath`` overrides the reference's own subpath; it is used when a unit
    picked from a multi-unit repository is recorded in the manifest.
    """
    if reference.kind is SourceKind.FILE:
        return f"file:{reference.url}"

    effective_subpath = subpath if subpath is not None else reference.subpath
    ref_suffix = f"#{reference.ref}" if reference.ref else ""

    pattern = _HOSTED_URL_PATTERNS.get(reference.kind)
    if pattern is not None:
        match = pattern.search(reference.url)
        if match:
            parts = [match.group(1), match.group(2)]
            if effective_subpath:
                parts.append(effective_subpath.strip("/"))
            return f"{reference.kind.value}:{'/'.join(parts)}{ref_suffix}"

    return f"git:{reference.url}{ref_suffix}"


def derive_unit_name(source: str, reference: SourceReference) -> str:
    """Guess a unit name from a locator when the caller did not supply one."""
    if reference.subpath:
        segments = [segment for segment in reference.subpath.split("/") if segment]
        if segments:
            return segments[-1]

    if source.startswith("file:"):
        segments = [segment for segment in source[len("file:") :].rstrip("/").split("/") if segment]
        return segments[-1] if segments else "skill"

    parsed = urlparse(reference.url)
    parts = [part for part in parsed.path.split("/") if part]
    if not parts:
        return "skill"
    name = parts[-1]
    return name[: -len(".git")] if name.endswith(".git") else name


def _parse_hosted(kind: SourceKind, text: str) -> SourceReference:
    base, ref = _split_ref(text)
    segments = base.split("/")
    if len(segments) < 2:
        raise InvalidSourceFormat(
            f'Invalid {kind.value} source: "{kind.value}:{text}" - expected at least owner/repo'
        )

    owner = segments[0]
    repo = segments[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    subpath = "/".join(segments[2:]) if len(segments) > 2 else None

    return SourceReference(
        kind=kind,
        url=f"{_HOSTED_BASES[kind]}/{owner}/{repo}.git",
        ref=ref,
        subpath=subpath or None,
    )


def _split_ref(text: str) -> Tuple[str, Optional[str]]:
    """Split on the last ``#``; a blank ref means "no ref"."""
    index = text.rfind("#")
    if index == -1:
        return text, None
    return text[:index], text[index + 1 :].strip() or None


__all__ = ["derive_unit_name", "format_source", "parse_source"]
