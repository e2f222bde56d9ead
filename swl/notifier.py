from __future__ import annotations

import time
from contextlib import nullcontext
from typing import Callable, Iterable

import httpx

from . import db
from .runtime import LABEL_PREFIX, NOTIFY_LABEL, SwarmService, TrackedState


class NotificationError(Exception):
    """At least one delivery in a batch failed. Per-service details are in the event log."""

    def __init__(self, failed: int):
        super().__init__("At least one request produced errors. Please consult logs for more details.")
        self.failed = failed


def label_params(labels: dict[str, str]) -> list[tuple[str, str]]:
    """Query parameters forwarded from ``com.df.*`` labels, prefix stripped, in label order."""
    return [
        (k[len(LABEL_PREFIX):], v)
        for k, v in labels.items()
        if k.startswith(LABEL_PREFIX) and k != NOTIFY_LABEL
    ]


def callback_url(base: str, service_name: str, extra: Iterable[tuple[str, str]] = ()) -> str:
    params = [("serviceName", service_name), *extra]
    return str(httpx.URL(base).copy_merge_params(params))


class Notifier:
    """Delivers create/remove callbacks with bounded retries and fixed-interval backoff."""

    def __init__(
        self,
        state: TrackedState,
        create_url: str,
        remove_url: str,
        client: httpx.Client | None = None,
        timeout_s: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.state = state
        self.create_url = create_url
        self.remove_url = remove_url
        self.timeout_s = timeout_s
        self._client = client
        self._sleep = sleep

    def notify_create(self, services: Iterable[SwarmService], retries: int, interval_s: float) -> None:
        """Send one create callback per eligible service.

        Raises NotificationError once the whole batch was attempted if any
        service exhausted its retries. Tracked state is not rolled back.
        """
        failed = 0
        with self._http() as client:
            for s in services:
                if not s.eligible:
                    continue
                url = self._url(self.create_url, s.name, label_params(s.labels))
                if url is None:
                    failed += 1
                    continue
                db.log_event("INFO", f"Sending service created notification to {url}", service_name=s.name)
                if not self._deliver(client, url, s.name, retries, interval_s):
                    failed += 1
        if failed:
            raise NotificationError(failed)

    def notify_remove(self, names: Iterable[str], retries: int, interval_s: float) -> None:
        """Send one remove callback per name; delivered names stop being tracked."""
        failed = 0
        with self._http() as client:
            for name in names:
                url = self._url(self.remove_url, name)
                if url is None:
                    failed += 1
                    continue
                db.log_event("INFO", f"Sending service removed notification to {url}", service_name=name)
                if self._deliver(client, url, name, retries, interval_s):
                    self.state.leave(name)
                else:
                    failed += 1
        if failed:
            raise NotificationError(failed)

    @staticmethod
    def _url(base: str, service_name: str, extra: Iterable[tuple[str, str]] = ()) -> str | None:
        """Build the callback URL; an unparsable target is recorded as a failed delivery."""
        try:
            return callback_url(base, service_name, extra)
        except httpx.InvalidURL as e:
            db.log_event("ERROR", f"Invalid callback URL {base!r}: {e}", service_name=service_name)
            return None

    def _http(self):
        if self._client is not None:
            return nullcontext(self._client)
        return httpx.Client(timeout=self.timeout_s, follow_redirects=False)

    def _deliver(self, client: httpx.Client, url: str, service_name: str, retries: int, interval_s: float) -> bool:
        attempts = max(1, int(retries))
        for i in range(1, attempts + 1):
            err = self._attempt(client, url)
            if err is None:
                return True
            if i < attempts:
                if interval_s > 0:
                    self._sleep(interval_s)
                continue
            db.log_event("ERROR", err, service_name=service_name)
        return False

    @staticmethod
    def _attempt(client: httpx.Client, url: str) -> str | None:
        """One GET; returns None on HTTP 200, otherwise the failure description."""
        try:
            resp = client.get(url)
        except httpx.HTTPError as e:
            return f"Request {url} failed: {type(e).__name__}: {e}"
        if resp.status_code == 200:
            return None
        return f"Request {url} returned status code {resp.status_code}\n{resp.text}"
