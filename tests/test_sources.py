"""Tests for source locator parsing."""

from __future__ import annotations

import pytest

from skillsync.errors import InvalidSourceFormat
from skillsync.models import SourceKind, SourceReference
from skillsync.sources import derive_unit_name, format_source, parse_source


def test_parse_github_with_subpath_and_ref() -> None:
    reference = parse_source("github:anthropics/skills/document-skills/pdf#v1.2")

    assert reference == SourceReference(
        kind=SourceKind.GITHUB,
        url="https://github.com/anthropics/skills.git",
        ref="v1.2",
        subpath="document-skills/pdf",
    )
    assert reference.is_remote


def test_bare_shorthand_is_github() -> None:
    assert parse_source("owner/repo") == parse_source("github:owner/repo")
    assert parse_source("owner/repo#main").ref == "main"


def test_parse_gitlab_and_generic_git() -> None:
    gitlab = parse_source("gitlab:group/project#main")
    assert gitlab.kind is SourceKind.GITLAB
    assert gitlab.url == "https://gitlab.com/group/project.git"
    assert gitlab.ref == "main"

    generic = parse_source("git:https://git.example.com/team/tools#dev")
    assert generic.kind is SourceKind.GIT
    assert generic.url == "https://git.example.com/team/tools.git"
    assert generic.ref == "dev"
    assert generic.subpath is None


def test_parse_strips_git_suffix_from_hosted_repo() -> None:
    assert parse_source("github:owner/repo.git").url == "https://github.com/owner/repo.git"


def test_parse_local_path() -> None:
    reference = parse_source("file:./skills/mine")

    assert reference.kind is SourceKind.FILE
    assert reference.url == "./skills/mine"
    assert reference.ref is None
    assert not reference.is_remote


def test_empty_ref_means_default_branch() -> None:
    assert parse_source("github:owner/repo#").ref is None
    assert parse_source("github:owner/repo#   ").ref is None
    assert parse_source("github:owner/repo# v1 ").ref == "v1"


def test_ref_splits_on_last_hash() -> None:
    reference = parse_source("git:https://example.com/a#b.git#release")

    assert reference.ref == "release"
    assert reference.url == "https://example.com/a#b.git"


def test_single_word_is_rejected() -> None:
    with pytest.raises(InvalidSourceFormat) as excinfo:
        parse_source("helloworld")

    message = str(excinfo.value)
    assert 'Unknown source format: "helloworld"' in message
    assert "github:owner/repo" in message
    assert isinstance(excinfo.value, ValueError)


def test_url_without_prefix_is_rejected() -> None:
    with pytest.raises(InvalidSourceFormat):
        parse_source("https://github.com/owner/repo")


def test_owner_only_is_rejected() -> None:
    with pytest.raises(InvalidSourceFormat, match="expected at least owner/repo"):
        parse_source("github:owner")


def test_parse_is_pure() -> None:
    assert parse_source("github:o/r/x#v1") == parse_source("github:o/r/x#v1")


@pytest.mark.parametrize(
    "locator",
    [
        "github:owner/repo",
        "github:owner/repo/skills/pdf#v1",
        "gitlab:group/project#main",
        "git:https://git.example.com/team/tools.git#dev",
        "file:./skills/mine",
    ],
)
def test_format_source_round_trips(locator: str) -> None:
    assert format_source(parse_source(locator)) == locator


def test_format_source_with_picked_subpath() -> None:
    reference = parse_source("github:owner/repo#v2")

    assert format_source(reference, "skills/canvas") == "github:owner/repo/skills/canvas#v2"


def test_derive_unit_name() -> None:
    assert derive_unit_name("github:o/r/skills/pdf", parse_source("github:o/r/skills/pdf")) == "pdf"
    assert derive_unit_name("github:o/my-repo", parse_source("github:o/my-repo")) == "my-repo"
    assert derive_unit_name("file:./skills/mine/", parse_source("file:./skills/mine/")) == "mine"
    locator = "git:https://git.example.com/team/tool.git"
    assert derive_unit_name(locator, parse_source(locator)) == "tool"
