"""The tool's own version and the cluster version it requires."""

from __future__ import annotations

import re
from typing import TextIO

from marinerctl.resource import ApiError, Cluster

VERSION = "devel"

MIN_K8S_MAJOR = 1  # endpoint slices need 1.17
MIN_K8S_MINOR = 19  # the oldest release that is tested

_INTEGER = re.compile(r"[+-]?[0-9]+")


def print_subctl_version(stream: TextIO) -> None:
    """Write the tool's version to ``stream``."""
    stream.write(f"subctl version: {VERSION}\n")


def _parse_int(text: str) -> int | None:
    return int(text) if _INTEGER.fullmatch(text) else None


def check_requirements(cluster: Cluster) -> tuple[str, list[str]]:
    """Return the server's version string and the requirements it fails."""
    info = cluster.server_version
    if info is None:
        raise ApiError("error obtaining API server version")
    major_text = info.get("major", "")
    minor_text = info.get("minor", "")

    major = _parse_int(major_text)
    if major is None:
        raise ValueError(f"error parsing API server major version {major_text}")

    minor = _parse_int(minor_text[:-1] if minor_text.endswith("+") else minor_text)
    if minor is None:
        raise ValueError(f"error parsing API server minor version {minor_text}")

    failed = []
    if major < MIN_K8S_MAJOR or (major == MIN_K8S_MAJOR and minor < MIN_K8S_MINOR):
        failed.append(
            f"Submariner requires Kubernetes {MIN_K8S_MAJOR}.{MIN_K8S_MINOR}; "
            f"your cluster is running {major_text}.{minor_text}"
        )
    return info.get("gitVersion", ""), failed