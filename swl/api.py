from __future__ import annotations

from docker.errors import DockerException
from fastapi import FastAPI, HTTPException, Query

from . import db
from .api_models import EventResponse, HealthResponse, NotifyServicesResponse, TrackedServicesResponse
from .docker_ops import docker_available
from .listener import Listener
from .notifier import NotificationError


PREFIX = "/v1/swarm-listener"


def create_app(listener: Listener, start_listener: bool = True) -> FastAPI:
    app = FastAPI(title="Swarm Listener")

    @app.on_event("startup")
    def startup() -> None:
        db.init_db()
        if start_listener:
            listener.start()

    @app.on_event("shutdown")
    def shutdown() -> None:
        listener.stop()

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(docker=docker_available())

    @app.get(f"{PREFIX}/services", response_model=TrackedServicesResponse)
    def tracked_services() -> TrackedServicesResponse:
        return TrackedServicesResponse(
            services=listener.state.known_names(),
            watermark=listener.state.watermark,
        )

    @app.get(f"{PREFIX}/events", response_model=list[EventResponse])
    def events(limit: int = Query(100, ge=1, le=1000), service: str | None = None) -> list[dict]:
        return db.latest_events(limit=limit, service_name=service)

    @app.post(f"{PREFIX}/notify-services", response_model=NotifyServicesResponse)
    def notify_services() -> NotifyServicesResponse:
        try:
            names = listener.notify_services()
        except DockerException as e:
            raise HTTPException(status_code=503, detail=f"Could not list services: {e}")
        except NotificationError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return NotifyServicesResponse(services=names)

    return app
