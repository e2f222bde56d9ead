import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from swl import db
from swl.runtime import SwarmService
from swl.settings import settings

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def event_db(tmp_path, monkeypatch):
    """Point the event log at an isolated sqlite file for every test."""
    monkeypatch.setattr(db, "settings", dataclasses.replace(settings, db_path=str(tmp_path / "events.db")))
    db.init_db()
    return db


@pytest.fixture
def make_service():
    def _make(name, offset_s=0, labels=None, notify=True):
        lbl = {"com.df.notify": ""} if notify else {}
        lbl.update(labels or {})
        return SwarmService(name=name, labels=lbl, created_at=T0 + timedelta(seconds=offset_s))

    return _make
