from __future__ import annotations

import time
from dataclasses import dataclass, field
from threading import Lock, Thread
from typing import Callable

from docker.errors import DockerException

from . import db
from .detector import detect_new, detect_removed
from .docker_ops import list_services
from .notifier import NotificationError, Notifier
from .runtime import SwarmService, TrackedState
from .settings import settings


@dataclass(frozen=True)
class CycleResult:
    created: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    create_ok: bool = True
    remove_ok: bool = True


class Listener:
    """Polls Swarm services and announces created/removed ones to the callback targets."""

    def __init__(
        self,
        state: TrackedState | None = None,
        notifier: Notifier | None = None,
        source: Callable[[], list[SwarmService]] = list_services,
        retries: int = settings.retries,
        retry_interval_s: float = settings.retry_interval_s,
        poll_interval_s: int = settings.poll_interval_s,
    ):
        self.state = state or TrackedState()
        self.notifier = notifier or Notifier(
            self.state,
            create_url=settings.notif_create_service_url,
            remove_url=settings.notif_remove_service_url,
            timeout_s=settings.notify_timeout_s,
        )
        self.source = source
        self.retries = max(1, int(retries))
        self.retry_interval_s = retry_interval_s
        self.poll_interval_s = poll_interval_s
        # One cycle at a time: tracked state must never see two writers.
        self._cycle_lock = Lock()
        self._stop = False
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop = False
        self._thr = Thread(target=self._loop, daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop = True

    def _loop(self) -> None:
        db.log_event("INFO", "Listener started")
        while not self._stop:
            try:
                self.run_cycle()
            except Exception as e:
                db.log_event("ERROR", f"Listener cycle failed: {type(e).__name__}: {e}")
            time.sleep(max(1, self.poll_interval_s))

    def run_cycle(self) -> CycleResult | None:
        """list -> detect new -> detect removed -> notify create -> notify remove.

        Returns None when the service list could not be fetched; nothing is
        detected or sent in that case.
        """
        with self._cycle_lock:
            try:
                services = self.source()
            except DockerException as e:
                db.log_event("ERROR", f"Could not list services: {type(e).__name__}: {e}")
                return None

            new = detect_new(services, self.state)
            removed = sorted(detect_removed(services, self.state))
            for s in new:
                db.log_event("INFO", "Service detected", service_name=s.name)
            for name in removed:
                db.log_event("INFO", "Service no longer present", service_name=name)

            create_ok = remove_ok = True
            if new:
                try:
                    self.notifier.notify_create(new, self.retries, self.retry_interval_s)
                except NotificationError as e:
                    create_ok = False
                    db.log_event("ERROR", f"{e.failed} create notification(s) failed: {e}")
            if removed:
                try:
                    self.notifier.notify_remove(removed, self.retries, self.retry_interval_s)
                except NotificationError as e:
                    remove_ok = False
                    db.log_event("ERROR", f"{e.failed} remove notification(s) failed: {e}")

            return CycleResult(
                created=[s.name for s in new],
                removed=removed,
                create_ok=create_ok,
                remove_ok=remove_ok,
            )

    def notify_services(self) -> list[str]:
        """Re-send create notifications for every eligible service currently running.

        Every re-announced service becomes KNOWN here even if the detector never
        reported it, so its removal is announced later. The watermark is left
        untouched. Raises DockerException when services cannot be listed and
        NotificationError when any delivery failed.
        """
        with self._cycle_lock:
            services = [s for s in self.source() if s.eligible]
            for s in services:
                self.state.enter(s.name)
            self.notifier.notify_create(services, self.retries, self.retry_interval_s)
            return [s.name for s in services]
