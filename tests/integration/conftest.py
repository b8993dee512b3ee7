from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy import delete
from sqlalchemy.orm import Session

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from rsv.infrastructure.messaging import redis_client
from rsv.infrastructure.db import session as db_session
from rsv.infrastructure.db.models.reservation import (
    CustomerModel,
    PaymentLogModel,
    ReservationModel,
    ReservationModificationModel,
    TableNightModel,
)
from rsv.infrastructure.db.models.table import TableBlockModel
from rsv.infrastructure.messaging.redis_publisher import RedisEventPublisher

BACKEND_DIR = Path(__file__).resolve().parents[2]


@pytest.fixture(scope="session", autouse=True)
def integration_environment(tmp_path_factory: pytest.TempPathFactory) -> Iterator[None]:
    database_file = tmp_path_factory.mktemp("db") / "rsv.sqlite3"
    database_url = os.getenv("INTEGRATION_DATABASE_URL", f"sqlite:///{database_file}")

    os.environ["DATABASE_URL"] = database_url
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
    os.environ.setdefault("OTEL_SERVICE_NAME", "rsv-backend-test")
    os.environ.setdefault("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    os.environ.pop("STRIPE_SECRET_KEY", None)

    db_session._build_engine.cache_clear()
    redis_client._build_client.cache_clear()

    env = os.environ.copy()
    env["PYTHONPATH"] = f"{BACKEND_DIR / 'src'}{os.pathsep}{env.get('PYTHONPATH', '')}".rstrip(
        os.pathsep
    )

    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "upgrade", "head"],
        cwd=BACKEND_DIR,
        env=env,
        check=True,
    )
    subprocess.run(
        [sys.executable, "-m", "rsv.tools.seed"],
        cwd=BACKEND_DIR,
        env=env,
        check=True,
    )
    yield


@pytest.fixture(autouse=True)
def clean_ledger() -> Iterator[None]:
    yield
    with Session(db_session.get_engine()) as session:
        for model in (
            PaymentLogModel,
            ReservationModificationModel,
            TableNightModel,
            ReservationModel,
            CustomerModel,
            TableBlockModel,
        ):
            session.execute(delete(model))
        session.commit()


@pytest.fixture(autouse=True)
def published_events(monkeypatch) -> list[tuple[str, str]]:
    events: list[tuple[str, str]] = []

    def publish(self, channel: str, message: str) -> None:
        events.append((channel, message))

    monkeypatch.setattr(RedisEventPublisher, "publish", publish)
    return events
