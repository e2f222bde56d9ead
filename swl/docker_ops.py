from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

import docker
from docker.errors import DockerException

from .db import log_event
from .runtime import SwarmService
from .settings import settings


USER_AGENT = "swarm-listener"

# Docker reports nanosecond precision; datetime keeps microseconds.
_CREATED_AT_RE = re.compile(r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d{2}:\d{2})?$")


def parse_created_at(raw: str | None) -> datetime | None:
    if not raw:
        return None
    m = _CREATED_AT_RE.match(raw.strip())
    if not m:
        raise ValueError(f"Unrecognized CreatedAt timestamp: {raw!r}")
    frac = (m.group("frac") or "")[:6].ljust(6, "0")
    tz = m.group("tz") or "Z"
    if tz == "Z":
        tz = "+00:00"
    return datetime.fromisoformat(f"{m.group('base')}.{frac}{tz}").astimezone(timezone.utc)


def _client() -> docker.DockerClient:
    return docker.DockerClient(base_url=settings.docker_host, version="auto", user_agent=USER_AGENT)


def docker_available() -> bool:
    try:
        c = _client()
        c.ping()
        return True
    except DockerException:
        return False


def to_swarm_service(attrs: dict[str, Any]) -> SwarmService:
    spec = attrs.get("Spec") or {}
    name = spec.get("Name", "")
    try:
        created_at = parse_created_at(attrs.get("CreatedAt"))
    except ValueError as e:
        # One bad timestamp must not hide the rest of the cluster.
        log_event("WARN", str(e), service_name=name)
        created_at = None
    return SwarmService(
        name=name,
        labels=dict(spec.get("Labels") or {}),
        created_at=created_at,
    )


def list_services(client: docker.DockerClient | None = None) -> list[SwarmService]:
    """List Swarm services in the order Docker returns them.

    Connection, API-version and "node is not a swarm manager" errors propagate unchanged.
    """
    c = client or _client()
    return [to_swarm_service(s.attrs) for s in c.services.list()]
