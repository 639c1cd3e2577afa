"""Abstract superclass for container registry clients."""

import json
from abc import abstractmethod
from pathlib import Path

import structlog

from ..config import RegistryAuth, RegistryConfig
from ..exceptions import RegistryError
from ..models.manifest import JSONManifest, Manifest
from ..models.registry_category import RegistryCategory

type JSONTag = dict[str, str | JSONManifest]

type JSONSnapshot = dict[str, dict[str, JSONTag]]


class ContainerRegistryClient:
    """Collection of methods we expect any registry client to provide.

    Note that these are synchronous.  That's on purpose.  A retention run
    works through one image at a time, resolving and deleting tags in
    order, and every step depends on the previous one having finished.

    Registries generally rate-limit requests in any event, so blasting out a
    thousand DELETE requests in parallel is not going to work as well as you
    might hope.
    """

    @abstractmethod
    def authenticate(self, auth: RegistryAuth) -> None: ...

    @abstractmethod
    def list_images(self) -> list[str]:
        """List every image (repository, in Docker terms) we can see."""
        ...

    @abstractmethod
    def list_tags_by_image(self, image: str) -> list[str]: ...

    @abstractmethod
    def get_image_digest(self, image: str, tag: str) -> str:
        """Resolve a tag to its manifest digest.

        Raises
        ------
        TagNotFoundError
            The tag does not exist.
        """
        ...

    @abstractmethod
    def get_manifest(self, image: str, tag: str) -> Manifest: ...

    @abstractmethod
    def delete_image_by_tag(self, image: str, tag: str) -> None:
        """Delete the manifest a tag points to.

        This removes every tag sharing that manifest's digest.
        """
        ...

    def close(self) -> None:
        """Release any connections the client holds."""

    def __init__(self, cfg: RegistryConfig) -> None:
        # Because multiple inheritance makes running super().__init__() ugly,
        # we do the work in a method that is not likely to exist on a different
        # class.
        self._extract_registry_config(cfg)

    def _extract_registry_config(self, cfg: RegistryConfig) -> None:
        self._logger = structlog.get_logger(__name__)
        self._registry = str(cfg.registry)
        self._repository = cfg.repository
        self._category = cfg.category
        self.name = cfg.name

    def snapshot(self) -> JSONSnapshot:
        """Gather every image, tag, digest, and manifest we can see."""
        data: JSONSnapshot = {}
        for image in self.list_images():
            data[image] = {}
            for tag in self.list_tags_by_image(image):
                data[image][tag] = {
                    "digest": self.get_image_digest(image, tag),
                    "manifest": self.get_manifest(image, tag).to_dict(),
                }
        return data

    def debug_dump_images(self, outputfile: Path) -> None:
        """Write JSON of image map."""
        dd = {
            "metadata": {"category": self._category.value},
            "data": self.snapshot(),
        }
        outputfile.write_text(json.dumps(dd, indent=2))
        self._logger.debug(f"Wrote registry snapshot to {outputfile}")

    @staticmethod
    def read_snapshot(
        inputfile: Path, category: RegistryCategory
    ) -> JSONSnapshot:
        inp = json.loads(inputfile.read_text())
        if inp["metadata"]["category"] != category.value:
            raise RegistryError(
                f"Dump is from {inp['metadata']['category']}, "
                f"not {category.value}"
            )
        return inp["data"]
