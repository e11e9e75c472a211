"""Tests for unit discovery."""

from __future__ import annotations

from pathlib import Path

from skillsync.discovery import discover_units, parse_marker
from skillsync.models import Strategy, UnitKind
from tests._fixtures.unit_builder import UnitBuilder


def test_discovers_units_in_sorted_order(unit_builder: UnitBuilder) -> None:
    unit_builder.skill("skills/pdf", "pdf", "Work with PDF files")
    unit_builder.skill("skills/canvas", "canvas-design", "Design posters")

    units = discover_units(unit_builder.path())

    assert [unit.name for unit in units] == ["canvas-design", "pdf"]
    assert units[1].path == (unit_builder.path() / "skills" / "pdf").resolve()
    assert units[1].description == "Work with PDF files"
    assert units[1].kind is UnitKind.SKILL


def test_root_marker_is_a_unit(unit_builder: UnitBuilder) -> None:
    unit_builder.skill("", "greeting", "Says hello")

    units = discover_units(unit_builder.path())

    assert len(units) == 1
    assert units[0].path == unit_builder.path().resolve()


def test_hidden_and_underscore_directories_are_pruned(unit_builder: UnitBuilder) -> None:
    unit_builder.skill(".hidden/one", "hidden", "Never found")
    unit_builder.skill("_internal/two", "internal", "Never found")
    unit_builder.skill("visible", "visible", "Found")

    assert [unit.name for unit in discover_units(unit_builder.path())] == ["visible"]


def test_depth_limit(unit_builder: UnitBuilder) -> None:
    unit_builder.skill("a/b/c", "deep", "Three levels down")
    unit_builder.skill("a/b/c/d", "too-deep", "Four levels down")

    assert [unit.name for unit in discover_units(unit_builder.path())] == ["deep"]


def test_subpath_narrows_search(unit_builder: UnitBuilder) -> None:
    unit_builder.skill("skills/pdf", "pdf", "PDF")
    unit_builder.skill("other/docx", "docx", "DOCX")

    units = discover_units(unit_builder.path(), "skills")

    assert [unit.name for unit in units] == ["pdf"]


def test_marker_name_is_case_insensitive(unit_builder: UnitBuilder) -> None:
    unit_builder.write({"lower/skill.md": "---\nname: lower\ndescription: lower-case marker\n---\n"})

    assert [unit.name for unit in discover_units(unit_builder.path())] == ["lower"]


def test_marker_without_description_is_skipped(unit_builder: UnitBuilder) -> None:
    unit_builder.write(
        {
            "incomplete/SKILL.md": "---\nname: incomplete\n---\n",
            "no-header/SKILL.md": "# Just a heading\n",
        }
    )

    assert discover_units(unit_builder.path()) == []


def test_unparseable_yaml_falls_back_to_line_extraction(tmp_path: Path) -> None:
    marker = tmp_path / "SKILL.md"
    marker.write_text(
        "---\nname: colon-skill\ndescription: Handles key: value pairs: badly\nbroken: [unclosed\n---\n",
        encoding="utf-8",
    )

    unit = parse_marker(marker, UnitKind.SKILL)

    assert unit is not None
    assert unit.name == "colon-skill"
    assert unit.description == "Handles key: value pairs: badly"


def test_extra_header_keys_are_preserved(tmp_path: Path) -> None:
    marker = tmp_path / "SKILL.md"
    marker.write_text(
        "---\nname: pdf\ndescription: PDF tools\nlicense: MIT\nallowed-tools: [Read]\n---\nBody\n",
        encoding="utf-8",
    )

    unit = parse_marker(marker, UnitKind.SKILL)

    assert unit is not None
    assert dict(unit.metadata.extra) == {"license": "MIT", "allowed-tools": ["Read"]}
    assert unit.metadata.strategy is None


def test_settings_strategy_is_parsed(unit_builder: UnitBuilder) -> None:
    unit_builder.settings("team", "team-settings", "Shared settings", strategy="merge")
    unit_builder.settings("bad", "bad-strategy", "Unknown strategy", strategy="overwrite")

    units = {unit.name: unit for unit in discover_units(unit_builder.path(), kind=UnitKind.SETTINGS)}

    assert units["team-settings"].metadata.strategy is Strategy.MERGE
    assert units["bad-strategy"].metadata.strategy is None
    assert units["team-settings"].kind is UnitKind.SETTINGS


def test_settings_discovery_ignores_skill_markers(unit_builder: UnitBuilder) -> None:
    unit_builder.skill("skill", "a-skill", "Not settings")

    assert discover_units(unit_builder.path(), kind=UnitKind.SETTINGS) == []


def test_header_opening_line_may_carry_trailing_spaces(unit_builder: UnitBuilder) -> None:
    unit_builder.write({"greeting/SKILL.md": "--- \nname: greeting\ndescription: Says hello\n---\n"})

    assert [unit.name for unit in discover_units(unit_builder.path())] == ["greeting"]


def test_deeply_nested_header_value_does_not_abort_discovery(tmp_path: Path) -> None:
    marker = tmp_path / "SKILL.md"
    marker.write_text(
        "---\nname: nested\ndescription: Deep value\nz: " + "[" * 5000 + "\n---\n",
        encoding="utf-8",
    )

    unit = parse_marker(marker, UnitKind.SKILL)

    assert unit is not None
    assert (unit.name, unit.description) == ("nested", "Deep value")
