"""Test fixtures for registry tag reaper."""

from collections.abc import Callable, Iterator
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml
from pydantic import HttpUrl

from tag_reaper.config import RegistryConfig
from tag_reaper.models.registry_category import RegistryCategory
from tag_reaper.storage.preloaded import PreloadedClient


@pytest.fixture
def support_dir() -> Path:
    return Path(__file__).parent / "support"


@pytest.fixture
def nexus_cfg(support_dir: Path) -> RegistryConfig:
    """Config for a Nexus repository, served from a snapshot."""
    return RegistryConfig(
        category=RegistryCategory.NEXUS,
        registry=HttpUrl("https://nexus.example.com"),
        repository="docker-hosted",
        dry_run=True,
        debug=True,
        input_file=support_dir / "nexus.contents.json",
    )


@pytest.fixture
def nexus_client(nexus_cfg: RegistryConfig) -> PreloadedClient:
    """Client for the Nexus snapshot."""
    return PreloadedClient(cfg=nexus_cfg)


@pytest.fixture
def bare_cfg() -> RegistryConfig:
    """Config for a Nexus repository with no data behind it."""
    return RegistryConfig(
        category=RegistryCategory.NEXUS,
        registry=HttpUrl("https://nexus.example.com"),
        repository="docker-hosted",
        dry_run=False,
        debug=True,
    )


@pytest.fixture
def make_client(bare_cfg: RegistryConfig) -> Callable[..., PreloadedClient]:
    """Build a client whose ``app`` image has the given tags.

    The argument maps tag names to digests.
    """

    def _make(
        tags: dict[str, str], client_class: type = PreloadedClient
    ) -> PreloadedClient:
        client = client_class(cfg=bare_cfg)
        client.load_snapshot(
            {"app": {tag: {"digest": dig} for tag, dig in tags.items()}}
        )
        return client

    return _make


@pytest.fixture
def test_config(support_dir: Path) -> Iterator[Path]:
    """YAML configuration file."""
    with TemporaryDirectory() as td:
        new_config = Path(td) / "config.yaml"
        config = yaml.safe_load((support_dir / "config.yaml").read_text())
        config["registries"][0]["inputFile"] = str(
            support_dir / "nexus.contents.json"
        )
        new_config.write_text(yaml.dump(config))

        yield new_config
