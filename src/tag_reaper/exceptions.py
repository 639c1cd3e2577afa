"""Exceptions raised by the tag reaper."""

__all__ = [
    "InvalidSpecError",
    "ParseError",
    "ReaperError",
    "RegistryError",
    "RemoteDeleteError",
    "ResolutionError",
    "TagNotFoundError",
]


class ReaperError(Exception):
    """Base class for tag reaper errors."""


class RegistryError(ReaperError):
    """A request to the container registry failed."""


class TagNotFoundError(RegistryError):
    """The requested tag does not exist in the registry."""

    def __init__(self, image: str, tag: str) -> None:
        super().__init__(f"Tag '{tag}' not found for image '{image}'")
        self.image = image
        self.tag = tag


class ResolutionError(ReaperError):
    """A tag could not be resolved to its content digest."""

    def __init__(self, image: str, tag: str, cause: Exception) -> None:
        super().__init__(f"Cannot resolve digest of {image}:{tag}: {cause}")
        self.image = image
        self.tag = tag
        self.cause = cause


class ParseError(ReaperError):
    """A tag could not be parsed as a version."""

    def __init__(self, tag: str, cause: Exception) -> None:
        super().__init__(f"Cannot parse version from tag '{tag}': {cause}")
        self.tag = tag
        self.cause = cause


class RemoteDeleteError(ReaperError):
    """Deleting a single tag from the registry failed."""

    def __init__(self, image: str, tag: str, cause: Exception) -> None:
        super().__init__(f"Cannot delete {image}:{tag}: {cause}")
        self.image = image
        self.tag = tag
        self.cause = cause


class InvalidSpecError(ReaperError):
    """A keep specification could not be parsed."""

    def __init__(self, spec: str, reason: str) -> None:
        super().__init__(f"Invalid keep spec '{spec}': {reason}")
        self.spec = spec
        self.reason = reason
