"""Planning copies between service containers and the local filesystem."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from enum import IntFlag

from .api import CopyOptions
from .containers import (
    Container,
    ContainerClient,
    OneOff,
    get_containers,
    get_specified_container,
)
from .errors import ComposeError


class CopyDirection(IntFlag):
    FROM_SERVICE = 1
    TO_SERVICE = 2
    ACROSS_SERVICES = 3


@dataclass(frozen=True)
class CopyPlan:
    """Which way a copy goes, the service involved, and both paths."""

    direction: CopyDirection
    service: str
    source_path: str
    destination_path: str


def split_cp_arg(arg: str) -> tuple[str, str]:
    """Split ``service:path`` into its parts; local paths have an empty service."""
    if os.path.isabs(arg):
        return "", arg
    parts = arg.split(":", 1)
    if len(parts) == 1 or parts[0].startswith("."):
        return "", arg
    return parts[0], parts[1]


def _base(path: str) -> str:
    if path == "":
        return "."
    stripped = path.rstrip(os.sep)
    if stripped == "":
        return os.sep
    return stripped.rsplit(os.sep, 1)[-1]


def _specifies_current_dir(path: str) -> bool:
    return _base(path) == "."


def resolve_local_path(local_path: str) -> str:
    """Absolute form of ``local_path``, keeping a trailing separator or ``/.``."""
    resolved = os.path.abspath(local_path)
    if not _specifies_current_dir(resolved) and _specifies_current_dir(local_path):
        if not resolved.endswith(os.sep):
            resolved += os.sep
        resolved += "."
    if not resolved.endswith(os.sep) and local_path.endswith(os.sep):
        resolved += os.sep
    return resolved


def resolve_copy(options: CopyOptions) -> CopyPlan:
    """Work out the direction and service of a copy; raise on invalid requests."""
    src_service, src_path = split_cp_arg(options.source)
    dst_service, dst_path = split_cp_arg(options.destination)

    direction = CopyDirection(0)
    service = ""
    if src_service:
        direction |= CopyDirection.FROM_SERVICE
        service = src_service
        if options.all:
            raise ComposeError("cannot use the --all flag when copying from a service")
    if dst_service:
        direction |= CopyDirection.TO_SERVICE
        service = dst_service
    if direction == CopyDirection.ACROSS_SERVICES:
        raise ComposeError("copying between services is not supported")
    if not direction:
        raise ComposeError("unknown copy direction")
    return CopyPlan(
        direction=direction, service=service, source_path=src_path, destination_path=dst_path
    )


def list_containers_targeted_for_copy(
    client: ContainerClient,
    project_name: str,
    index: int,
    direction: CopyDirection,
    service_name: str,
) -> list[Container]:
    """Containers a copy applies to: one by index, the first, or all of them."""
    if index > 0:
        return [
            get_specified_container(
                client, project_name, OneOff.EXCLUDE, True, service_name, index
            )
        ]
    containers = get_containers(client, project_name, OneOff.EXCLUDE, True, service_name)
    if not containers:
        raise ComposeError(f"no container found for service {json.dumps(service_name)}")
    if direction == CopyDirection.FROM_SERVICE:
        return containers[:1]
    return containers