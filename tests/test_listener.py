from collections import Counter

import httpx
from docker.errors import DockerException

from swl import db
from swl.listener import Listener
from swl.notifier import Notifier
from swl.runtime import Membership, TrackedState


class FakeSwarm:
    """Service source whose listing can be changed between cycles."""

    def __init__(self, services=None):
        self.services = list(services or [])
        self.error = None

    def __call__(self):
        if self.error:
            raise self.error
        return list(self.services)


def _listener(swarm, handler, retries=2):
    state = TrackedState()
    notifier = Notifier(
        state,
        create_url="http://x/create",
        remove_url="http://x/remove",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=lambda s: None,
    )
    return Listener(state=state, notifier=notifier, source=swarm, retries=retries, retry_interval_s=0)


def test_cycle_announces_creation_then_removal(make_service):
    calls = []

    def handler(request):
        calls.append((request.url.path, request.url.params["serviceName"]))
        return httpx.Response(200)

    swarm = FakeSwarm([make_service("web", 1), make_service("plain", 2, notify=False)])
    listener = _listener(swarm, handler)

    result = listener.run_cycle()
    assert result.created == ["web"]
    assert result.removed == []
    assert calls == [("/create", "web")]

    # Nothing changed: no callbacks.
    result = listener.run_cycle()
    assert result.created == [] and result.removed == []
    assert len(calls) == 1

    swarm.services = []
    result = listener.run_cycle()
    assert result.removed == ["web"]
    assert result.remove_ok
    assert calls[-1] == ("/remove", "web")
    assert listener.state.known_names() == []


def test_docker_failure_skips_cycle(make_service):
    calls = []

    def handler(request):
        calls.append(request.url)
        return httpx.Response(200)

    swarm = FakeSwarm([make_service("web")])
    swarm.error = DockerException("daemon unreachable")
    listener = _listener(swarm, handler)

    assert listener.run_cycle() is None
    assert calls == []
    assert listener.state.watermark is None
    assert any("Could not list services" in e["message"] for e in db.latest_events())


def test_failed_create_does_not_block_removal(make_service):
    attempts = Counter()

    def handler(request):
        attempts[request.url.path] += 1
        if request.url.path == "/create":
            return httpx.Response(500)
        return httpx.Response(200)

    swarm = FakeSwarm([make_service("old", 1)])
    listener = _listener(swarm, handler)
    listener.run_cycle()
    attempts.clear()

    swarm.services = [make_service("new", 5)]
    result = listener.run_cycle()

    assert result.created == ["new"]
    assert not result.create_ok
    assert result.removed == ["old"]
    assert result.remove_ok
    assert attempts == {"/create": 2, "/remove": 1}
    # The unannounced service is still tracked so its removal will be reported.
    assert listener.state.state_of("new") is Membership.KNOWN


def test_failed_removal_is_retried_next_cycle(make_service):
    remove_ok = {"value": False}

    def handler(request):
        if request.url.path == "/remove" and not remove_ok["value"]:
            return httpx.Response(502)
        return httpx.Response(200)

    swarm = FakeSwarm([make_service("web", 1)])
    listener = _listener(swarm, handler)
    listener.run_cycle()

    swarm.services = []
    result = listener.run_cycle()
    assert result.removed == ["web"] and not result.remove_ok
    assert listener.state.known_names() == ["web"]

    remove_ok["value"] = True
    result = listener.run_cycle()
    assert result.removed == ["web"] and result.remove_ok
    assert listener.state.known_names() == []


def test_notify_services_resends_without_moving_watermark(make_service):
    calls = []

    def handler(request):
        calls.append(request.url.params["serviceName"])
        return httpx.Response(200)

    swarm = FakeSwarm([make_service("web", 1), make_service("api", 2), make_service("plain", 3, notify=False)])
    listener = _listener(swarm, handler)
    listener.run_cycle()
    watermark = listener.state.watermark
    calls.clear()

    assert listener.notify_services() == ["web", "api"]
    assert calls == ["web", "api"]
    assert listener.state.watermark == watermark


def test_unparsable_create_url_still_delivers_removals(make_service):
    calls = []

    def handler(request):
        calls.append((request.url.path, request.url.params["serviceName"]))
        return httpx.Response(200)

    swarm = FakeSwarm([make_service("old", 1)])
    listener = _listener(swarm, handler)
    listener.run_cycle()
    calls.clear()

    listener.notifier.create_url = "http://x:badport/create"
    swarm.services = [make_service("new", 5)]
    result = listener.run_cycle()

    assert not result.create_ok
    assert result.remove_ok
    assert calls == [("/remove", "old")]
    assert listener.state.known_names() == ["new"]
    errors = [e for e in db.latest_events() if e["level"] == "ERROR" and e["service_name"] == "new"]
    assert len(errors) == 1
    assert "Invalid callback URL" in errors[0]["message"]


def test_notify_services_tracks_services_the_detector_skipped(make_service):
    calls = []

    def handler(request):
        calls.append((request.url.path, request.url.params["serviceName"]))
        return httpx.Response(200)

    swarm = FakeSwarm([make_service("web", 1)])
    listener = _listener(swarm, handler)
    listener.run_cycle()

    # Created before the watermark, so polling alone never reports it.
    swarm.services = [make_service("web", 1), make_service("legacy", 0)]
    assert listener.run_cycle().created == []
    assert listener.state.state_of("legacy") is Membership.ABSENT

    listener.notify_services()
    assert listener.state.state_of("legacy") is Membership.KNOWN

    calls.clear()
    swarm.services = [make_service("web", 1)]
    assert listener.run_cycle().removed == ["legacy"]
    assert calls == [("/remove", "legacy")]
