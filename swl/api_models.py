from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "healthy"
    docker: bool = Field(..., description="Whether the Docker daemon answered a ping")


class TrackedServicesResponse(BaseModel):
    services: list[str] = Field(default_factory=list, description="Names tracked by the listener")
    watermark: datetime | None = Field(None, description="Latest creation time already accounted for")


class EventResponse(BaseModel):
    id: int
    ts: str
    level: str
    service_name: str | None = None
    message: str


class NotifyServicesResponse(BaseModel):
    status: str = "OK"
    services: list[str] = Field(default_factory=list)
