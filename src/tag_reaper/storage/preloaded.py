"""Registry client serving a previously-dumped registry snapshot."""

from pathlib import Path
from typing import cast

from ..config import RegistryAuth, RegistryConfig
from ..exceptions import RegistryError, TagNotFoundError
from ..models.manifest import JSONManifest, Manifest
from .registry import ContainerRegistryClient, JSONSnapshot


class PreloadedClient(ContainerRegistryClient):
    """Client backed by a JSON snapshot rather than a live registry.

    Deletions only modify the in-memory copy, and, as in a real registry,
    deleting a tag removes every tag that shares its digest.
    """

    def __init__(self, cfg: RegistryConfig) -> None:
        super()._extract_registry_config(cfg)
        self._images: dict[str, dict[str, str]] = {}
        self._manifests: dict[str, Manifest] = {}
        if cfg.input_file:
            self.debug_load_images(cfg.input_file)

    def authenticate(self, auth: RegistryAuth) -> None:
        """Nothing to authenticate against."""

    def debug_load_images(self, inputfile: Path) -> None:
        """Read image map from JSON."""
        self.load_snapshot(self.read_snapshot(inputfile, self._category))

    def load_snapshot(self, data: JSONSnapshot) -> None:
        self._images = {}
        self._manifests = {}
        count = 0
        for image, tags in data.items():
            self._images[image] = {}
            for tag, obj in tags.items():
                digest = str(obj["digest"])
                self._images[image][tag] = digest
                manifest = obj.get("manifest")
                if manifest:
                    self._manifests[digest] = Manifest.from_dict(
                        cast(JSONManifest, manifest)
                    )
                count += 1
        self._logger.debug(
            f"Ingested {count} tag{'s' if count != 1 else ''} for "
            f"{len(self._images)} image{'s' if len(self._images) != 1 else ''}"
        )

    def list_images(self) -> list[str]:
        return list(self._images.keys())

    def list_tags_by_image(self, image: str) -> list[str]:
        if image not in self._images:
            raise RegistryError(f"Image '{image}' not found")
        return list(self._images[image].keys())

    def get_image_digest(self, image: str, tag: str) -> str:
        try:
            return self._images[image][tag]
        except KeyError:
            raise TagNotFoundError(image, tag) from None

    def get_manifest(self, image: str, tag: str) -> Manifest:
        digest = self.get_image_digest(image, tag)
        return self._manifests.get(digest, Manifest(config_size=0))

    def delete_image_by_tag(self, image: str, tag: str) -> None:
        digest = self.get_image_digest(image, tag)
        tags = self._images[image]
        for victim in [x for x, dig in tags.items() if dig == digest]:
            del tags[victim]
        self._logger.debug(f"Removed manifest {digest} from {image}")
