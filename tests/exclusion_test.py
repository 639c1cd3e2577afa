"""Tests for digest-based exclusion."""

from collections.abc import Callable

from tag_reaper.exceptions import ResolutionError
from tag_reaper.services.exclusion import ExclusionSet
from tag_reaper.services.resolver import CachingDigestResolver
from tag_reaper.storage.preloaded import PreloadedClient


def test_latest_always_excluded(
    make_client: Callable[..., PreloadedClient],
) -> None:
    client = make_client({"1.0.0": "sha256:01", "latest": "sha256:02"})
    resolver = CachingDigestResolver(client, "app")
    exclusions, errors = ExclusionSet.build(resolver, [])
    assert errors == []
    assert exclusions.names == frozenset({"latest"})
    assert exclusions.is_protected("sha256:02")
    assert not exclusions.is_protected("sha256:01")


def test_latest_not_duplicated(
    make_client: Callable[..., PreloadedClient],
) -> None:
    client = make_client({"latest": "sha256:02"})
    resolver = CachingDigestResolver(client, "app")
    exclusions, errors = ExclusionSet.build(resolver, ["latest"])
    assert errors == []
    assert exclusions.digests == frozenset({"sha256:02"})


def test_missing_tags_are_reported(
    make_client: Callable[..., PreloadedClient],
) -> None:
    """A missing tag cannot be protected, but does not stop the others."""
    client = make_client({"stable": "sha256:01"})
    resolver = CachingDigestResolver(client, "app")
    exclusions, errors = ExclusionSet.build(resolver, ["gone", "stable"])
    assert exclusions.is_protected("sha256:01")
    assert sorted(x.tag for x in errors) == ["gone", "latest"]
    assert all(isinstance(x, ResolutionError) for x in errors)
    assert exclusions.is_excluded_name("gone")


def test_merged_does_not_mutate() -> None:
    base = ExclusionSet(digests=frozenset({"sha256:01"}))
    working = base.merged(["sha256:02"])
    assert working.is_protected("sha256:01")
    assert working.is_protected("sha256:02")
    assert not base.is_protected("sha256:02")


def test_resolver_caches(make_client: Callable[..., PreloadedClient]) -> None:
    client = make_client({"1.0.0": "sha256:01"})
    resolver = CachingDigestResolver(client, "app")
    assert resolver.resolve("1.0.0") == "sha256:01"
    client.load_snapshot({"app": {"1.0.0": {"digest": "sha256:99"}}})
    assert resolver.resolve("1.0.0") == "sha256:01"
