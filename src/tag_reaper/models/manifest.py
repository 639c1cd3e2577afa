"""Model for the parts of an image manifest we display."""

from dataclasses import asdict, dataclass, field
from typing import Any, Self

type JSONManifest = dict[str, Any]


@dataclass
class Layer:
    """A single layer blob referenced by a manifest."""

    digest: str
    size: int


@dataclass
class Manifest:
    """Schema 2 image manifest, reduced to config size and layers."""

    config_size: int
    layers: list[Layer] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return self.config_size + sum(x.size for x in self.layers)

    def to_dict(self) -> JSONManifest:
        return asdict(self)

    @classmethod
    def from_dict(cls, inp: JSONManifest) -> Self:
        layers = [
            Layer(digest=str(x["digest"]), size=int(x["size"]))
            for x in inp.get("layers", [])
        ]
        return cls(config_size=int(inp.get("config_size", 0)), layers=layers)

    @classmethod
    def from_registry(cls, inp: JSONManifest) -> Self:
        """Build from a manifest document as served by the registry."""
        config = inp.get("config") or {}
        layers = [
            Layer(digest=str(x["digest"]), size=int(x.get("size", 0)))
            for x in inp.get("layers") or []
        ]
        return cls(config_size=int(config.get("size", 0)), layers=layers)
