"""Ordering of tags within a retention group."""

import re
from functools import cmp_to_key

import structlog
from semver import Version

from ..exceptions import ParseError, ResolutionError
from ..models.retention import SortStrategy
from .exclusion import ExclusionSet
from .resolver import CachingDigestResolver

_NON_DIGITS = re.compile(r"\D")

__all__ = ["VersionComparator", "numeric_value", "version_part"]


def version_part(tag: str) -> str:
    """Return the part of a tag that carries its version.

    ``app-1.2.0`` is version ``1.2.0`` of the ``app`` group; a tag with no
    ``-`` is all version.
    """
    _, sep, rest = tag.partition("-")
    return rest if sep else tag


def numeric_value(tag: str) -> int:
    """Return the digits of a tag as an integer, or -1 if it has none."""
    digits = _NON_DIGITS.sub("", tag)
    return int(digits) if digits else -1


class VersionComparator:
    """Decide which of two tags is older.

    In semver mode, protected tags sort after everything else, so any
    "keep the newest N" policy keeps them.  Tags that do not parse as
    semantic versions compare equal to whatever they are compared with.

    Parameters
    ----------
    strategy
        Semantic-version or numeric ordering.
    exclusions
        Protected digests and tag names.
    resolver
        Shared digest resolver for the image, used to find protected tags.
    """

    def __init__(
        self,
        strategy: SortStrategy,
        exclusions: ExclusionSet,
        resolver: CachingDigestResolver,
    ) -> None:
        self.strategy = strategy
        self._exclusions = exclusions
        self._resolver = resolver
        self._versions: dict[str, Version | ParseError] = {}
        self._protected: dict[str, bool] = {}
        self._logger = structlog.get_logger(__name__)

    def less(self, left: str, right: str) -> bool:
        """Return whether ``left`` orders strictly before ``right``."""
        if self.strategy == SortStrategy.NUMERIC:
            return numeric_value(left) < numeric_value(right)
        if self._is_protected(left):
            return False
        if self._is_protected(right):
            return True
        lver = self._version(left)
        rver = self._version(right)
        if lver is None or rver is None:
            return False
        return lver < rver

    def compare(self, left: str, right: str) -> int:
        if self.less(left, right):
            return -1
        if self.less(right, left):
            return 1
        return 0

    def sort(self, tags: list[str]) -> list[str]:
        """Return ``tags`` sorted oldest first.

        The sort is stable, so tags that compare equal stay in listing
        order.
        """
        return sorted(tags, key=cmp_to_key(self.compare))

    def _is_protected(self, tag: str) -> bool:
        if tag not in self._protected:
            if self._exclusions.is_excluded_name(tag):
                self._protected[tag] = True
            else:
                try:
                    digest = self._resolver.resolve(tag)
                except ResolutionError as exc:
                    self._logger.warning(
                        f"Treating '{tag}' as unprotected for sorting: {exc}"
                    )
                    digest = ""
                self._protected[tag] = self._exclusions.is_protected(digest)
        return self._protected[tag]

    def _version(self, tag: str) -> Version | None:
        if tag not in self._versions:
            try:
                self._versions[tag] = Version.parse(version_part(tag))
            except (ValueError, TypeError) as exc:
                err = ParseError(tag, exc)
                self._logger.warning(str(err))
                self._versions[tag] = err
        result = self._versions[tag]
        return None if isinstance(result, ParseError) else result
