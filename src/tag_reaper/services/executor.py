"""Application of delete plans against a registry."""

from enum import Enum

import structlog

from ..exceptions import (
    RegistryError,
    RemoteDeleteError,
    ResolutionError,
    TagNotFoundError,
)
from ..models.retention import DeletePlan, ExecutionReport
from ..storage.registry import ContainerRegistryClient


class DeleteState(Enum):
    """Steps of deleting a single, explicitly named tag."""

    RESOLVE_IMAGE_NAME = "resolve image name"
    VALIDATE_TAG_PRESENT = "validate tag present"
    ISSUE_DELETE = "issue delete"
    DONE = "done"
    FAILED = "failed"


class DeletionExecutor:
    """Delete tags, one request at a time.

    Parameters
    ----------
    client
        Registry client that performs the deletions.
    dry_run
        Log what would be deleted, but do not delete it.
    """

    def __init__(
        self, client: ContainerRegistryClient, *, dry_run: bool = True
    ) -> None:
        self._client = client
        self._dry_run = dry_run
        self._logger = structlog.get_logger(__name__)

    def execute(self, plan: DeletePlan) -> ExecutionReport:
        """Delete every tag in ``plan``.

        Each tag's digest is looked up again just before it is deleted, in
        case the tag was moved since planning; a tag now pointing at a
        protected digest is skipped.  Failures are recorded and the rest of
        the plan still runs.
        """
        image = plan.image
        report = ExecutionReport(image=image)
        dry = " (not really)" if self._dry_run else ""
        gone: set[str] = set()
        for tag in plan.tags:
            try:
                digest = self._client.get_image_digest(image, tag)
            except TagNotFoundError as exc:
                reason = f"no longer present ({exc})"
                self._logger.info(f"Skipping {image}:{tag}: {reason}")
                report.skipped[tag] = reason
                continue
            except RegistryError as exc:
                err = ResolutionError(image, tag, exc)
                self._logger.error(str(err))
                report.errors.append(err)
                continue
            if digest in plan.protected:
                reason = f"digest {digest} is protected"
                self._logger.warning(f"Skipping {image}:{tag}: {reason}")
                report.skipped[tag] = reason
                continue
            if digest in gone:
                reason = f"digest {digest} already deleted"
                self._logger.info(f"Skipping {image}:{tag}: {reason}")
                report.skipped[tag] = reason
                continue
            self._logger.info(f"Deleting {image}:{tag}{dry}")
            if not self._dry_run:
                try:
                    self._client.delete_image_by_tag(image, tag)
                except RegistryError as exc:
                    err = RemoteDeleteError(image, tag, exc)
                    self._logger.error(str(err))
                    report.errors.append(err)
                    continue
            gone.add(digest)
            report.deleted.append(tag)
        self._logger.info(
            f"Deleted {len(report.deleted)} tags from {image}{dry}",
            skipped=len(report.skipped),
            failed=len(report.errors),
        )
        return report

    def delete_tag(
        self, image: str, tag: str
    ) -> tuple[DeleteState, RegistryError | None]:
        """Delete a single named tag, with no retention logic at all.

        Returns
        -------
        tuple
            The final state, and the error that caused a failure, if any.
        """
        state = DeleteState.RESOLVE_IMAGE_NAME
        error: RegistryError | None = None
        dry = " (not really)" if self._dry_run else ""
        while state not in (DeleteState.DONE, DeleteState.FAILED):
            self._logger.debug(f"Deleting {image}:{tag}: {state.value}")
            try:
                state = self._step(state, image, tag)
            except RegistryError as exc:
                self._logger.error(
                    f"Cannot delete {image}:{tag}{dry}",
                    step=state.value,
                    error=str(exc),
                )
                error = exc
                state = DeleteState.FAILED
        return state, error

    def _step(self, state: DeleteState, image: str, tag: str) -> DeleteState:
        match state:
            case DeleteState.RESOLVE_IMAGE_NAME:
                if not image or image not in self._client.list_images():
                    raise RegistryError(f"Image '{image}' not found")
                return DeleteState.VALIDATE_TAG_PRESENT
            case DeleteState.VALIDATE_TAG_PRESENT:
                if tag not in self._client.list_tags_by_image(image):
                    raise TagNotFoundError(image, tag)
                return DeleteState.ISSUE_DELETE
            case DeleteState.ISSUE_DELETE:
                if self._dry_run:
                    self._logger.info(f"Deleting {image}:{tag} (not really)")
                else:
                    self._client.delete_image_by_tag(image, tag)
                    self._logger.info(f"Deleted {image}:{tag}")
                return DeleteState.DONE
            case _:
                return state
