"""Partitioning of an image's tags into retention groups."""

from collections.abc import Iterable

import structlog

from ..models.retention import (
    KEEP_ALL_GROUP,
    OTHERS_GROUP,
    KeepSpec,
    RetentionGroup,
    tag_prefix,
)


class RetentionGrouper:
    """Assign each tag to a group by its prefix.

    The policy table always contains the keep-all group (``prod`` unless
    configured otherwise), which keeps everything, and ``others``, which
    keeps nothing and catches every tag whose prefix matches no other
    group.  Keep specs override either.

    Parameters
    ----------
    keep_all_group
        Name of the group that keeps all of its tags by default.
    """

    def __init__(self, keep_all_group: str = KEEP_ALL_GROUP) -> None:
        self.keep_all_group = keep_all_group
        self._logger = structlog.get_logger(__name__)

    def policy_table(self, specs: Iterable[KeepSpec]) -> dict[str, int | None]:
        """Map group names to keep counts; `None` means keep all."""
        table: dict[str, int | None] = {
            self.keep_all_group: None,
            OTHERS_GROUP: 0,
        }
        for spec in specs:
            table[spec.group] = spec.keep
        return table

    def group(
        self,
        tags: Iterable[str],
        specs: Iterable[KeepSpec],
        excluded: Iterable[str] = (),
    ) -> dict[str, RetentionGroup]:
        """Partition ``tags`` into retention groups.

        Parameters
        ----------
        tags
            Every tag of the image.
        specs
            Keep specs from the retention policy.
        excluded
            Tag names that belong to no group at all.

        Returns
        -------
        dict
            Retention groups by name.  Every tag not in ``excluded`` is in
            exactly one of them.
        """
        skip = set(excluded)
        groups = {
            name: RetentionGroup(name=name, keep=keep)
            for name, keep in self.policy_table(specs).items()
        }
        for tag in tags:
            if tag in skip:
                continue
            prefix = tag_prefix(tag)
            key = prefix if prefix in groups else OTHERS_GROUP
            groups[key].tags.append(tag)
        for grp in groups.values():
            self._logger.debug(
                f"Group '{grp.name}' has {len(grp)} tags",
                keep="all" if grp.keeps_all else grp.keep,
            )
        return groups
