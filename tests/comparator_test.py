"""Tests for tag ordering."""

from collections.abc import Callable

from tag_reaper.models.retention import SortStrategy
from tag_reaper.services.comparator import (
    VersionComparator,
    numeric_value,
    version_part,
)
from tag_reaper.services.exclusion import ExclusionSet
from tag_reaper.services.resolver import CachingDigestResolver
from tag_reaper.storage.preloaded import PreloadedClient


def _comparator(
    client: PreloadedClient,
    strategy: SortStrategy = SortStrategy.SEMVER,
    exclude: list[str] | None = None,
) -> VersionComparator:
    resolver = CachingDigestResolver(client, "app")
    exclusions, _ = ExclusionSet.build(resolver, exclude or [])
    return VersionComparator(strategy, exclusions, resolver)


def test_version_part() -> None:
    assert version_part("app-1.2.0") == "1.2.0"
    assert version_part("1.2.0") == "1.2.0"
    assert version_part("app-1.2.0-rc.1") == "1.2.0-rc.1"


def test_numeric_value() -> None:
    assert numeric_value("build-10") == 10
    assert numeric_value("v1.2.3") == 123
    assert numeric_value("latest") == -1


def test_semver_compares_numerically(
    make_client: Callable[..., PreloadedClient],
) -> None:
    """1.10.0 is newer than 1.2.0, even though it sorts first as a string."""
    client = make_client({"1.2.0": "sha256:01", "1.10.0": "sha256:02"})
    cmp = _comparator(client)
    assert cmp.less("1.2.0", "1.10.0")
    assert not cmp.less("1.10.0", "1.2.0")
    assert cmp.sort(["1.10.0", "1.2.0"]) == ["1.2.0", "1.10.0"]


def test_semver_strips_prefix(
    make_client: Callable[..., PreloadedClient],
) -> None:
    client = make_client({"app-1.2.0": "sha256:01", "app-1.3.0": "sha256:02"})
    cmp = _comparator(client)
    assert cmp.less("app-1.2.0", "app-1.3.0")
    assert not cmp.less("app-1.3.0", "app-1.2.0")


def test_numeric_fallback(make_client: Callable[..., PreloadedClient]) -> None:
    client = make_client({"build-9": "sha256:01", "build-10": "sha256:02"})
    cmp = _comparator(client, SortStrategy.NUMERIC)
    assert cmp.less("build-9", "build-10")
    assert not cmp.less("build-10", "build-9")
    assert cmp.sort(["build-10", "build-9", "nodigits"]) == [
        "nodigits",
        "build-9",
        "build-10",
    ]


def test_unparseable_compares_equal(
    make_client: Callable[..., PreloadedClient],
) -> None:
    """Tags that are not semantic versions keep their listing order."""
    client = make_client(
        {"v2": "sha256:01", "v1": "sha256:02", "1.0.0": "sha256:03"}
    )
    cmp = _comparator(client)
    assert not cmp.less("v1", "1.0.0")
    assert not cmp.less("1.0.0", "v1")
    assert cmp.compare("v2", "v1") == 0
    assert cmp.sort(["v2", "v1"]) == ["v2", "v1"]


def test_protected_sorts_last(
    make_client: Callable[..., PreloadedClient],
) -> None:
    """A tag sharing a protected digest is newer than everything else."""
    client = make_client(
        {
            "0.1.0": "sha256:01",
            "1.0.0": "sha256:02",
            "2.0.0": "sha256:03",
            "stable": "sha256:01",
        }
    )
    cmp = _comparator(client, exclude=["stable"])
    assert cmp.sort(["0.1.0", "2.0.0", "1.0.0"]) == ["1.0.0", "2.0.0", "0.1.0"]
    assert not cmp.less("0.1.0", "2.0.0")
    assert cmp.less("2.0.0", "0.1.0")


def test_both_protected_equal(
    make_client: Callable[..., PreloadedClient],
) -> None:
    client = make_client(
        {"0.1.0": "sha256:01", "0.2.0": "sha256:02", "latest": "sha256:02"}
    )
    cmp = _comparator(client, exclude=["0.1.0"])
    assert cmp.compare("0.1.0", "0.2.0") == 0
    assert cmp.compare("0.2.0", "0.1.0") == 0


def test_numeric_ignores_protection(
    make_client: Callable[..., PreloadedClient],
) -> None:
    client = make_client({"build-1": "sha256:01", "build-2": "sha256:02"})
    cmp = _comparator(client, SortStrategy.NUMERIC, exclude=["build-1"])
    assert cmp.sort(["build-2", "build-1"]) == ["build-1", "build-2"]


def test_unresolvable_is_unprotected(
    make_client: Callable[..., PreloadedClient],
) -> None:
    client = make_client({"1.0.0": "sha256:01"})
    cmp = _comparator(client)
    assert cmp.less("1.0.0", "2.0.0")
    assert not cmp.less("2.0.0", "1.0.0")


def test_sort_strategy_selection() -> None:
    assert SortStrategy.from_str("semver") == SortStrategy.SEMVER
    assert SortStrategy.from_str("nosemver") == SortStrategy.NUMERIC
    assert SortStrategy.from_str("alphabetical") == SortStrategy.SEMVER
    assert SortStrategy.from_str(None) == SortStrategy.SEMVER
