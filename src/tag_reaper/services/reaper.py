"""Provides reaping services for a container registry configuration."""

import logging
import os
from collections.abc import Iterable

import structlog
from pydantic import SecretStr

from ..config import Config, ImagePolicy, RegistryAuth, RegistryConfig
from ..exceptions import ResolutionError
from ..models.manifest import Manifest
from ..models.registry_category import RegistryCategory
from ..models.retention import (
    DOCKER_DEFAULT_TAG,
    DeletePlan,
    ExecutionReport,
    SortStrategy,
    parse_keep_specs,
)
from ..storage.preloaded import PreloadedClient
from ..storage.registry import ContainerRegistryClient
from ..storage.v2 import RegistryV2Client
from .comparator import VersionComparator
from .executor import DeleteState, DeletionExecutor
from .exclusion import ExclusionSet
from .grouper import RetentionGrouper
from .planner import RetentionPlanner
from .resolver import CachingDigestResolver


class Reaper:
    """Provides the mechanism to implement a tag retention policy.

    Parameters
    ----------
    cfg
        Registry configuration.
    storage
        Registry client to use instead of the one the configuration
        describes.
    """

    def __init__(
        self,
        cfg: RegistryConfig,
        storage: ContainerRegistryClient | None = None,
    ) -> None:
        # Establish debugging and dry-run first.
        self._debug = cfg.debug
        self._dry_run = cfg.dry_run

        log_level = logging.DEBUG if self._debug else logging.INFO
        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(log_level)
        )
        self._sort = cfg.sort
        self._images = cfg.images
        self._grouper = RetentionGrouper(cfg.keep_all_group)
        if storage is None:
            storage = self._make_storage(cfg)
            storage.authenticate(self._make_auth(cfg))
        self._storage = storage
        self._executor = DeletionExecutor(storage, dry_run=self._dry_run)
        self._plans: dict[str, DeletePlan] = {}
        self._tags: dict[str, list[str]] = {}
        self.name = cfg.name
        # Set up logging
        self._logger = structlog.get_logger(f"reaper-{self.name}")
        self._logger.debug(f"Initialized logging for reaper {self.name}")

    @staticmethod
    def _make_storage(cfg: RegistryConfig) -> ContainerRegistryClient:
        if cfg.input_file:
            return PreloadedClient(cfg=cfg)
        match cfg.category:
            case RegistryCategory.NEXUS | RegistryCategory.DOCKER:
                return RegistryV2Client(cfg=cfg)
            case _:
                raise NotImplementedError(
                    f"Storage driver for {cfg.category} not implemented yet"
                )

    @staticmethod
    def _make_auth(cfg: RegistryConfig) -> RegistryAuth:
        auth = cfg.auth.model_copy() if cfg.auth else RegistryAuth()
        if username := os.getenv("REAPER_USERNAME"):
            auth.username = username
        if password := os.getenv("REAPER_PASSWORD"):
            auth.password = SecretStr(password)
        return auth

    @property
    def storage(self) -> ContainerRegistryClient:
        return self._storage

    @property
    def plans(self) -> dict[str, DeletePlan]:
        return self._plans

    def list_images(self) -> list[str]:
        return self._storage.list_images()

    def list_tags(
        self,
        image: str,
        sort: SortStrategy | None = None,
        exclude: Iterable[str] = (),
    ) -> list[str]:
        """List an image's tags, oldest first.

        Excluded tags (and ``latest``) sort last in semver order.
        """
        tags = self._storage.list_tags_by_image(image)
        resolver = CachingDigestResolver(self._storage, image)
        exclusions, _ = ExclusionSet.build(resolver, exclude)
        comparator = VersionComparator(
            sort or self._sort, exclusions, resolver
        )
        return comparator.sort(tags)

    def image_info(self, image: str, tag: str) -> Manifest:
        return self._storage.get_manifest(image, tag)

    def plan(
        self,
        image: str,
        keep: str | list[str],
        exclude: Iterable[str] = (),
        sort: SortStrategy | None = None,
    ) -> DeletePlan:
        """Plan which tags of ``image`` to delete.

        Parameters
        ----------
        image
            Image to plan for.
        keep
            Keep specs, such as ``"prod,stage:3"``.
        exclude
            Tags whose digests must survive.  ``latest`` always does.
        sort
            Tag ordering; defaults to the registry's.

        Raises
        ------
        RegistryError
            The image's tags could not be listed.
        """
        exclude = list(exclude)
        tags = self._storage.list_tags_by_image(image)
        self._tags[image] = tags
        resolver = CachingDigestResolver(self._storage, image)
        exclusions, resolution_errors = ExclusionSet.build(resolver, exclude)
        specs, spec_errors = parse_keep_specs(keep)
        plan = DeletePlan(image=image)
        # Only a missing implicit 'latest' is harmless.
        for err in resolution_errors:
            if err.tag == DOCKER_DEFAULT_TAG and err.tag not in exclude:
                plan.warnings.append(err)
            else:
                plan.errors.append(err)
        plan.warnings.extend(spec_errors)

        comparator = VersionComparator(
            sort or self._sort, exclusions, resolver
        )
        planner = RetentionPlanner(resolver)
        groups = self._grouper.group(tags, specs, exclusions.names)
        protected = set(exclusions.digests)
        # Keep-all groups go first, so their digests protect other groups.
        ordered = sorted(groups.values(), key=lambda x: not x.keeps_all)
        for group in ordered:
            try:
                victims, retained = planner.plan(group, comparator, exclusions)
            except ResolutionError as exc:
                plan.errors.append(exc)
                if group.keeps_all:
                    self._logger.error(
                        f"Not reaping {image}: cannot protect keep-all group"
                        f" '{group.name}': {exc}"
                    )
                    plan.tags = []
                    break
                self._logger.error(
                    f"Not reaping group '{group.name}' of {image}: {exc}"
                )
                continue
            if group.keeps_all:
                exclusions = exclusions.merged(retained)
            plan.add(victims)
            protected.update(retained)
        plan.protected = frozenset(protected)
        self._plans[image] = plan
        self._logger.info(
            f"Planned deletion of {len(plan)} of {len(tags)} tags of {image}"
        )
        return plan

    def plan_all(self, policies: list[ImagePolicy] | None = None) -> None:
        """Plan every configured image policy."""
        for policy in policies if policies is not None else self._images:
            self.plan(
                policy.name,
                keep=policy.keep,
                exclude=policy.exclude,
                sort=policy.sort,
            )

    def remaining(self, image: str) -> list[str]:
        """Return the tags which would remain after executing the plan."""
        plan = self._plans.get(image)
        tags = self._tags.get(image, [])
        if plan is None:
            self._logger.warning(f"No plan has been formulated for {image}")
            return list(tags)
        return [x for x in tags if x not in plan.tags]

    def report(self) -> None:
        """Report on tags which would be deleted by plan execution."""
        if not self._plans:
            self._logger.warning(
                "No plan has been formulated and thus cannot be executed."
            )
            return
        for image, plan in self._plans.items():
            headline = f"Tags to delete for {self.name} {image}:"
            print(headline)
            print("-" * len(headline))
            for tag in plan.tags:
                print(f"{image}:{tag}")
            for err in [*plan.warnings, *plan.errors]:
                print(f"! {err}")
            print(f"{len(plan)} of {len(self._tags.get(image, []))} tags\n")

    def reap(self) -> list[ExecutionReport]:
        """Execute every plan, and forget them afterwards."""
        if not self._plans:
            self._logger.warning(
                "No plan has been formulated and thus cannot be executed."
            )
            return []
        reports: list[ExecutionReport] = []
        for plan in self._plans.values():
            report = self._executor.execute(plan)
            report.errors = [*plan.errors, *report.errors]
            report.warnings = list(plan.warnings)
            reports.append(report)
        self._plans = {}
        return reports

    def close(self) -> None:
        self._storage.close()

    def delete_tag(self, image: str, tag: str) -> ExecutionReport:
        """Delete one named tag, bypassing retention policy."""
        report = ExecutionReport(image=image)
        state, error = self._executor.delete_tag(image, tag)
        if state == DeleteState.DONE:
            report.deleted.append(tag)
        elif error is not None:
            report.errors.append(error)
        return report


class BuckDharma:
    """Buck Dharma is in charge of all the Reapers."""

    def __init__(self, cfg: Config) -> None:
        self.reaper: dict[str, Reaper] = {}
        for reg in cfg.registries:
            reaper = Reaper(reg)
            self.reaper[reaper.name] = reaper

    def plan(self) -> None:
        for reaper in self.reaper.values():
            reaper.plan_all()

    def report(self) -> None:
        for reaper in self.reaper.values():
            reaper.report()

    def reap(self) -> list[ExecutionReport]:
        reports: list[ExecutionReport] = []
        for reaper in self.reaper.values():
            reports.extend(reaper.reap())
        return reports

    def close(self) -> None:
        for reaper in self.reaper.values():
            reaper.close()
