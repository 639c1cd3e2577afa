"""Configuration for the tag reaper for private container registries."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Self

import yaml
from pydantic import (
    BaseModel,
    BeforeValidator,
    Field,
    HttpUrl,
    SecretStr,
    model_validator,
)
from safir.pydantic import CamelCaseModel

from .models.registry_category import RegistryCategory
from .models.retention import KEEP_ALL_GROUP, SortStrategy


def _empty_str_is_none(inp: Any) -> Any:
    if isinstance(inp, str) and inp == "":
        return None
    return inp


def _lenient_sort(inp: Any) -> Any:
    if isinstance(inp, SortStrategy):
        return inp
    return SortStrategy.from_str(inp)


def _comma_list(inp: Any) -> Any:
    if isinstance(inp, str):
        return [x.strip() for x in inp.split(",") if x.strip()]
    return inp


class RegistryAuth(BaseModel):
    """Generic authentication item for a container registry."""

    username: Annotated[
        str | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Username",
            description="Username (if any) for authentication.",
            examples=["admin"],
        ),
    ] = None

    password: Annotated[
        SecretStr | None,
        Field(
            title="Password",
            description="Secret (password or token) for authentication.",
            examples=["hunter2"],
        ),
    ] = None


class ImagePolicy(CamelCaseModel):
    """Retention policy for a single image in a registry."""

    name: Annotated[
        str,
        Field(
            title="Name",
            description="Image name within the repository",
            examples=["backend/api"],
        ),
    ]

    keep: Annotated[
        str,
        Field(
            title="Keep",
            description=(
                "Comma-separated keep specs.  Each is either 'group' (keep"
                " every tag in that group) or 'group:N' (keep the newest N)."
            ),
            examples=["prod,stage:5,others:3"],
        ),
    ] = ""

    exclude: Annotated[
        list[str],
        BeforeValidator(_comma_list),
        Field(
            title="Exclude",
            description=(
                "Tags whose images must never be deleted.  'latest' is "
                "always excluded."
            ),
            examples=[["stable"]],
        ),
    ] = []

    sort: Annotated[
        SortStrategy,
        BeforeValidator(_lenient_sort),
        Field(
            title="Sort",
            description="Tag ordering: 'semver' (default) or 'nosemver'.",
        ),
    ] = SortStrategy.SEMVER


class RegistryConfig(CamelCaseModel):
    """Configuration to talk to a particular container registry."""

    registry: Annotated[
        HttpUrl,
        Field(
            title="Registry",
            description="URL of registry host",
            examples=[HttpUrl("https://nexus.example.com/")],
        ),
    ]

    category: Annotated[
        RegistryCategory,
        Field(
            title="Category",
            description="Category of registry",
            examples=[RegistryCategory.NEXUS],
        ),
    ] = RegistryCategory.NEXUS

    repository: Annotated[
        str | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Repository",
            description="Nexus hosted Docker repository name",
            examples=["docker-hosted"],
        ),
    ] = None

    auth: Annotated[
        RegistryAuth | None,
        Field(
            title="Registry Auth",
            description="Authentication details for specified registry.",
        ),
    ] = None

    sort: Annotated[
        SortStrategy,
        BeforeValidator(_lenient_sort),
        Field(
            title="Sort",
            description="Default tag ordering for images in this registry.",
        ),
    ] = SortStrategy.SEMVER

    keep_all_group: Annotated[
        str,
        Field(
            title="Keep-all group",
            description=(
                "Tag prefix group that is never reaped unless a keep spec "
                "names it explicitly."
            ),
        ),
    ] = KEEP_ALL_GROUP

    images: Annotated[
        list[ImagePolicy],
        Field(
            title="Images",
            description="Images to reap, each with its own policy.",
        ),
    ] = []

    dry_run: Annotated[
        bool,
        Field(
            title="Dry run",
            description="Do not actually delete any tags from registry.",
        ),
    ] = True

    debug: Annotated[
        bool,
        Field(
            title="Debug",
            description="Much more verbose logging.",
        ),
    ] = False

    input_file: Annotated[
        Path | None,
        Field(
            title="Input file",
            description=(
                "If supplied, use registry data from this file, rather than "
                "querying the actual registry."
            ),
        ),
    ] = None

    @model_validator(mode="after")
    def _check_repository(self) -> Self:
        if (
            self.category == RegistryCategory.NEXUS
            and not self.repository
            and self.input_file is None
        ):
            raise ValueError("Nexus registries require a repository name")
        return self

    @property
    def name(self) -> str:
        name = str(self.registry)
        if self.category == RegistryCategory.NEXUS and self.repository:
            name += self.repository
        return name


class Config(BaseModel):
    """Configuration for multiple registries."""

    registries: Annotated[
        list[RegistryConfig],
        Field(
            title="Registries",
            description="List of registries to be reaped.",
        ),
    ]

    @classmethod
    def from_file(cls, path: Path) -> Self:
        return cls.model_validate(yaml.safe_load(path.read_text()))

    def get_registry(self, name: str | None = None) -> RegistryConfig:
        """Return the registry with the given name, or the first one."""
        if not self.registries:
            raise ValueError("No registries configured")
        if name is None:
            return self.registries[0]
        for reg in self.registries:
            if name in (reg.name, reg.repository):
                return reg
        raise ValueError(f"No registry named '{name}' configured")
