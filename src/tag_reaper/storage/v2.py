"""Minimalist function set of the Docker Registry HTTP API V2.

We must be able to list images and tags, to resolve tags to digests, to
read manifests, and to delete manifests.  Nexus serves this API for each
hosted Docker repository under ``/repository/<name>/``.
"""

import httpx

from ..config import RegistryAuth, RegistryConfig
from ..exceptions import RegistryError, TagNotFoundError
from ..models.manifest import Manifest
from ..models.registry_category import RegistryCategory
from .registry import ContainerRegistryClient

MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DIGEST_HEADER = "Docker-Content-Digest"
PAGE_SIZE = 100


class RegistryV2Client(ContainerRegistryClient):
    """Client for Nexus and generic Docker Distribution registries."""

    def __init__(
        self,
        cfg: RegistryConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super()._extract_registry_config(cfg)
        base = self._registry.rstrip("/")
        if cfg.category == RegistryCategory.NEXUS:
            if not cfg.repository:
                raise ValueError("Nexus registry client needs a repository")
            base += f"/repository/{cfg.repository}"
        self._url = f"{base}/v2"
        self._http_client = httpx.Client(transport=transport)
        self._http_client.headers["accept"] = f"{MANIFEST_V2}, {OCI_MANIFEST}"

    def authenticate(self, auth: RegistryAuth) -> None:
        if not auth.username:
            self._logger.debug("No username supplied; using anonymous access")
            return
        password = auth.password.get_secret_value() if auth.password else ""
        self._http_client.auth = httpx.BasicAuth(auth.username, password)
        self._logger.info(f"Using credentials for '{auth.username}'")

    def _request(
        self,
        method: str,
        url: str,
        image: str = "",
        tag: str = "",
        params: dict[str, int] | None = None,
    ) -> httpx.Response:
        try:
            r = self._http_client.request(method, url, params=params)
            r.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404 and tag:
                raise TagNotFoundError(image, tag) from exc
            raise RegistryError(
                f"{method} {url} failed: {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RegistryError(f"{method} {url} failed: {exc}") from exc
        return r

    def _get_paged(self, url: str, key: str) -> list[str]:
        """Follow ``Link: <...>; rel="next"`` headers to the last page."""
        results: list[str] = []
        next_page: str | None = url
        params: dict[str, int] | None = {"n": PAGE_SIZE}
        count = 0
        while next_page:
            self._logger.debug(f"Requesting {url}: page {count + 1}")
            r = self._request("GET", next_page, params=params)
            results.extend(r.json().get(key) or [])
            link = r.links.get("next")
            # The next link already carries the page size and position.
            next_page = str(r.url.join(link["url"])) if link else None
            params = None
            count += 1
        return results

    def list_images(self) -> list[str]:
        images = self._get_paged(f"{self._url}/_catalog", "repositories")
        self._logger.debug(f"Found {len(images)} images")
        return images

    def list_tags_by_image(self, image: str) -> list[str]:
        tags = self._get_paged(f"{self._url}/{image}/tags/list", "tags")
        self._logger.debug(f"Found {len(tags)} tags for {image}")
        return tags

    def get_image_digest(self, image: str, tag: str) -> str:
        r = self._request(
            "HEAD", f"{self._url}/{image}/manifests/{tag}", image, tag
        )
        digest = r.headers.get(DIGEST_HEADER)
        if not digest:
            raise RegistryError(
                f"Registry sent no {DIGEST_HEADER} for {image}:{tag}"
            )
        return digest

    def get_manifest(self, image: str, tag: str) -> Manifest:
        r = self._request(
            "GET", f"{self._url}/{image}/manifests/{tag}", image, tag
        )
        return Manifest.from_registry(r.json())

    def delete_image_by_tag(self, image: str, tag: str) -> None:
        """Delete a manifest, addressed by the digest its tag resolves to.

        https://distribution.github.io/distribution/spec/api/#deleting-an-image
        """
        digest = self.get_image_digest(image, tag)
        self._request(
            "DELETE", f"{self._url}/{image}/manifests/{digest}", image, tag
        )
        self._logger.debug(f"Deleted {image}:{tag} ({digest})")

    def close(self) -> None:
        self._http_client.close()
