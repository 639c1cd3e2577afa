"""Selection of tags to delete from a retention group."""

import structlog

from ..models.retention import RetentionGroup
from .comparator import VersionComparator
from .exclusion import ExclusionSet
from .resolver import CachingDigestResolver


class RetentionPlanner:
    """Work out which tags of a group to delete.

    Parameters
    ----------
    resolver
        Shared digest resolver for the image being planned.
    """

    def __init__(self, resolver: CachingDigestResolver) -> None:
        self._resolver = resolver
        self._logger = structlog.get_logger(__name__)

    def plan(
        self,
        group: RetentionGroup,
        comparator: VersionComparator,
        exclusions: ExclusionSet,
    ) -> tuple[list[str], frozenset[str]]:
        """Plan deletions for one group.

        The newest tags of the group are retained, and so is any older tag
        whose digest matches a retained or protected one, since deleting it
        would delete the retained image as well.

        Parameters
        ----------
        group
            Group to plan.
        comparator
            Ordering for the group's tags.
        exclusions
            Digests protected for the whole image.  Never modified.

        Returns
        -------
        tuple
            Tags to delete, oldest first, and the digests this group
            retains.  A keep-all group retains the digest of every tag.

        Raises
        ------
        ResolutionError
            A tag in the group could not be resolved, so nothing in the
            group can safely be deleted.
        """
        if not group.tags:
            return [], frozenset()
        if group.keeps_all:
            retained = frozenset(self._resolver.resolve(x) for x in group.tags)
            self._logger.debug(
                f"Group '{group.name}': keeping all {len(group.tags)} tags"
            )
            return [], retained
        tags = comparator.sort(group.tags)
        keep = min(max(group.keep or 0, 0), len(tags))
        start = len(tags) - keep + 1
        start = min(max(start, 0), len(tags))
        retained = frozenset(self._resolver.resolve(x) for x in tags[start:])
        working = exclusions.merged(retained)

        victims: list[str] = []
        for tag in tags[: len(tags) - keep]:
            digest = self._resolver.resolve(tag)
            if working.is_protected(digest):
                self._logger.debug(
                    f"Sparing {tag}: digest {digest} is retained"
                )
                continue
            victims.append(tag)
        self._logger.debug(
            f"Group '{group.name}': deleting {len(victims)} of {len(tags)}"
        )
        return victims, retained
