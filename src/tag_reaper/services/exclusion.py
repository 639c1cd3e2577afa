"""Digest-based protection of tags that must never be deleted."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Self

import structlog

from ..exceptions import ResolutionError
from ..models.retention import DOCKER_DEFAULT_TAG
from .resolver import CachingDigestResolver


@dataclass(frozen=True)
class ExclusionSet:
    """Digests that must survive, and the tag names they came from.

    Protection is by digest, not by name: any tag pointing at a protected
    digest is protected, whatever it is called.
    """

    digests: frozenset[str] = frozenset()
    names: frozenset[str] = frozenset()

    @classmethod
    def build(
        cls, resolver: CachingDigestResolver, exclude: Iterable[str]
    ) -> tuple[Self, list[ResolutionError]]:
        """Resolve excluded tag names into a protected digest set.

        ``latest`` is always excluded.  A name that cannot be resolved
        cannot be protected; the failure is returned, and the rest of the
        set is still built.

        Parameters
        ----------
        resolver
            Digest resolver for the image being reaped.
        exclude
            Tag names to protect.

        Returns
        -------
        tuple
            The exclusion set, and the resolution failures.
        """
        logger = structlog.get_logger(__name__)
        names = list(dict.fromkeys([*exclude, DOCKER_DEFAULT_TAG]))
        digests: set[str] = set()
        errors: list[ResolutionError] = []
        for name in names:
            try:
                digests.add(resolver.resolve(name))
            except ResolutionError as exc:
                logger.warning(f"Cannot protect '{name}': {exc}")
                errors.append(exc)
        logger.debug(
            f"Protecting {len(digests)} digests for {resolver.image}",
            excluded=names,
        )
        return cls(digests=frozenset(digests), names=frozenset(names)), errors

    def is_protected(self, digest: str) -> bool:
        return digest in self.digests

    def is_excluded_name(self, tag: str) -> bool:
        return tag in self.names

    def merged(self, digests: Iterable[str]) -> Self:
        """Return a new set that also protects ``digests``."""
        return type(self)(
            digests=self.digests.union(digests), names=self.names
        )
