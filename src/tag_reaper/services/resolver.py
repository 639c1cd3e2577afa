"""Resolution of tags to content digests."""

from typing import Protocol

from ..exceptions import ReaperError, ResolutionError


class DigestResolver(Protocol):
    """Anything that can turn a tag into a digest.

    Every `ContainerRegistryClient` satisfies this.
    """

    def get_image_digest(self, image: str, tag: str) -> str: ...


class CachingDigestResolver:
    """Resolve each tag of an image at most once.

    One of these is built per invocation and shared by the comparator and
    every planner, so sorting a group does not hit the registry once per
    comparison.  Failures are cached too.

    Parameters
    ----------
    resolver
        Underlying resolver, normally the registry client.
    image
        Image whose tags are being resolved.
    """

    def __init__(self, resolver: DigestResolver, image: str) -> None:
        self._resolver = resolver
        self.image = image
        self._digests: dict[str, str | ResolutionError] = {}

    def resolve(self, tag: str) -> str:
        """Return the digest of ``tag``.

        Raises
        ------
        ResolutionError
            The tag could not be resolved.
        """
        if tag not in self._digests:
            try:
                self._digests[tag] = self._resolver.get_image_digest(
                    self.image, tag
                )
            except ReaperError as exc:
                self._digests[tag] = ResolutionError(self.image, tag, exc)
        result = self._digests[tag]
        if isinstance(result, ResolutionError):
            raise result
        return result
