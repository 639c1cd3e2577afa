"""Data types for tag retention policies and delete plans."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Self

import structlog

from ..exceptions import InvalidSpecError, ReaperError

DOCKER_DEFAULT_TAG = "latest"
"""Implicit tag used by Docker when no tag is specified; never reaped."""

KEEP_ALL_GROUP = "prod"
"""Group which keeps every tag unless a keep spec says otherwise."""

OTHERS_GROUP = "others"
"""Catch-all group for tags whose prefix matches no group key."""

__all__ = [
    "DOCKER_DEFAULT_TAG",
    "KEEP_ALL_GROUP",
    "OTHERS_GROUP",
    "DeletePlan",
    "ExecutionReport",
    "KeepSpec",
    "RetentionGroup",
    "SortStrategy",
    "parse_keep_specs",
    "tag_prefix",
]


class SortStrategy(Enum):
    """How tags within a retention group are ordered."""

    SEMVER = "semver"
    NUMERIC = "nosemver"

    @classmethod
    def from_str(cls, inp: str | None) -> Self:
        """Anything we do not recognize is treated as semver."""
        for strategy in cls:
            if inp == strategy.value:
                return strategy
        return cls.SEMVER


def tag_prefix(tag: str) -> str:
    """Return the part of a tag before the first ``-``, or the whole tag."""
    return tag.split("-", 1)[0]


@dataclass(frozen=True)
class KeepSpec:
    """How many of the newest tags in a group to keep.

    A ``keep`` of `None` means "keep everything in this group".
    """

    group: str
    keep: int | None = None

    @classmethod
    def from_str(cls, spec: str) -> tuple[Self, InvalidSpecError | None]:
        """Parse ``group`` or ``group:N``.

        An unparseable or negative number does not reject the spec: the
        group keeps everything instead, and the problem is returned so it
        can be reported.
        """
        key, sep, number = spec.strip().partition(":")
        key = key.strip()
        if not key:
            raise InvalidSpecError(spec, "empty group name")
        if not sep:
            return cls(group=key), None
        try:
            keep = int(number.strip())
        except ValueError:
            return cls(group=key), InvalidSpecError(
                spec, f"'{number}' is not a number; keeping all"
            )
        if keep < 0:
            return cls(group=key), InvalidSpecError(
                spec, "negative count; keeping all"
            )
        return cls(group=key, keep=keep), None


def parse_keep_specs(
    inp: str | list[str],
) -> tuple[list[KeepSpec], list[InvalidSpecError]]:
    """Parse a comma-separated list of keep specs.

    Parameters
    ----------
    inp
        Either ``"prod,stage:3"`` or an already-split list of specs.

    Returns
    -------
    tuple
        The parsed specs, and any problems found along the way.  Specs
        with no group name are dropped.
    """
    logger = structlog.get_logger(__name__)
    raw = inp.split(",") if isinstance(inp, str) else inp
    specs: list[KeepSpec] = []
    errors: list[InvalidSpecError] = []
    for item in raw:
        if not item.strip():
            continue
        try:
            spec, problem = KeepSpec.from_str(item)
        except InvalidSpecError as exc:
            logger.warning(str(exc))
            errors.append(exc)
            continue
        if problem is not None:
            logger.warning(str(problem))
            errors.append(problem)
        specs.append(spec)
    return specs, errors


@dataclass
class RetentionGroup:
    """A named bucket of tags sharing one keep policy."""

    name: str
    keep: int | None
    tags: list[str] = field(default_factory=list)

    @property
    def keeps_all(self) -> bool:
        return self.keep is None

    def __len__(self) -> int:
        return len(self.tags)


@dataclass
class DeletePlan:
    """Tags selected for deletion from one image.

    ``protected`` holds every digest that must survive execution: the
    global exclusion set plus the digests retained by each group.
    ``errors`` are groups that could not be planned; ``warnings`` are
    problems that only weakened the plan, such as an excluded tag that
    does not exist.
    """

    image: str
    tags: list[str] = field(default_factory=list)
    protected: frozenset[str] = frozenset()
    errors: list[ReaperError] = field(default_factory=list)
    warnings: list[ReaperError] = field(default_factory=list)

    def add(self, tags: list[str]) -> None:
        for tag in tags:
            if tag not in self.tags:
                self.tags.append(tag)

    def __len__(self) -> int:
        return len(self.tags)


@dataclass
class ExecutionReport:
    """Outcome of applying a delete plan.

    ``warnings`` are carried over from the plan and do not make the
    outcome a failure.
    """

    image: str
    deleted: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    errors: list[ReaperError] = field(default_factory=list)
    warnings: list[ReaperError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
