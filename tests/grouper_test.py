"""Tests for keep spec parsing and retention grouping."""

import pytest

from tag_reaper.exceptions import InvalidSpecError
from tag_reaper.models.retention import KeepSpec, parse_keep_specs, tag_prefix
from tag_reaper.services.grouper import RetentionGrouper


def test_parse_keep_specs() -> None:
    specs, errors = parse_keep_specs("prod, stage:3,others:0")
    assert errors == []
    assert specs == [
        KeepSpec(group="prod"),
        KeepSpec(group="stage", keep=3),
        KeepSpec(group="others", keep=0),
    ]


def test_bad_number_keeps_all() -> None:
    specs, errors = parse_keep_specs("stage:many,dev:-2")
    assert specs == [KeepSpec(group="stage"), KeepSpec(group="dev")]
    assert len(errors) == 2
    assert all(isinstance(x, InvalidSpecError) for x in errors)


def test_empty_group_rejected() -> None:
    specs, errors = parse_keep_specs(":3,,dev:1")
    assert specs == [KeepSpec(group="dev", keep=1)]
    assert len(errors) == 1
    with pytest.raises(InvalidSpecError):
        KeepSpec.from_str(":3")


def test_tag_prefix() -> None:
    assert tag_prefix("stage-1.0.0") == "stage"
    assert tag_prefix("stage-1.0.0-rc.1") == "stage"
    assert tag_prefix("1.0.0") == "1.0.0"


def test_default_groups() -> None:
    groups = RetentionGrouper().group([], [])
    assert set(groups) == {"prod", "others"}
    assert groups["prod"].keeps_all
    assert groups["others"].keep == 0


def test_grouping() -> None:
    tags = [
        "prod-1.0.0",
        "stage-1.0.0",
        "stage-1.1.0",
        "1.0.0",
        "feature-x",
        "latest",
        "stable",
    ]
    specs, _ = parse_keep_specs("stage:1")
    groups = RetentionGrouper().group(tags, specs, ["latest", "stable"])
    assert groups["prod"].tags == ["prod-1.0.0"]
    assert groups["stage"].tags == ["stage-1.0.0", "stage-1.1.0"]
    assert groups["stage"].keep == 1
    assert groups["others"].tags == ["1.0.0", "feature-x"]

    # Every tag that is not excluded is in exactly one group.
    grouped = [x for grp in groups.values() for x in grp.tags]
    assert sorted(grouped) == sorted(set(tags) - {"latest", "stable"})
    assert len(grouped) == len(set(grouped))


def test_override_keep_all_group() -> None:
    specs, _ = parse_keep_specs("prod:2,others:5")
    groups = RetentionGrouper().group(["prod-1", "x"], specs)
    assert groups["prod"].keep == 2
    assert groups["others"].keep == 5


def test_configurable_keep_all_group() -> None:
    groups = RetentionGrouper("release").group(["release-1", "prod-1"], [])
    assert groups["release"].keeps_all
    assert groups["release"].tags == ["release-1"]
    assert "prod" not in groups
    assert groups["others"].tags == ["prod-1"]
