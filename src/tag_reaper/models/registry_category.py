from enum import Enum


class RegistryCategory(Enum):
    """Each registry category mounts the Docker Registry API at its own
    location.  Nexus serves each hosted Docker repository under its own
    path; a generic Docker Distribution registry serves it at the root.
    """

    NEXUS = "nexus"
    DOCKER = "docker"
