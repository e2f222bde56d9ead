from __future__ import annotations

from typing import Iterable

from .runtime import SwarmService, TrackedState


def detect_new(services: Iterable[SwarmService], state: TrackedState) -> list[SwarmService]:
    """Return eligible services created after the watermark, in input order.

    Every returned service is marked KNOWN and pushes the watermark forward.
    The watermark is compared as it stood when the call started, so a poll
    listing services out of creation order still reports all of them.
    Services without a creation timestamp only qualify while the watermark is unset.
    """
    since = state.watermark
    new: list[SwarmService] = []
    for s in services:
        if not s.eligible:
            continue
        if since is not None and (s.created_at is None or s.created_at <= since):
            continue
        new.append(s)
        state.enter(s.name)
        if s.created_at is not None:
            state.advance_watermark(s.created_at)
    return new


def detect_removed(services: Iterable[SwarmService], state: TrackedState) -> set[str]:
    """Names tracked as KNOWN that no longer appear in the service list.

    Only name presence matters; labels are not re-checked. State is not modified.
    """
    present = {s.name for s in services}
    return {n for n in state.known_names() if n not in present}
