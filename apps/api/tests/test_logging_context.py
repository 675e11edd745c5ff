from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Generator
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from graficontrol.business.company.models import Company
from graficontrol.core.auth import AuthUser, get_current_user
from graficontrol.core.config import get_settings
from graficontrol.core.database import Base, get_db
from graficontrol.logging import JsonLogFormatter
from graficontrol.main import app
from graficontrol.platform.security.context import Role


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def setup_env() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def company(db_session: Session) -> Company:
    company = Company(name="Log Print Shop")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture()
def client(db_session: Session, company: Company) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_user() -> AuthUser:
        return AuthUser(sub="user-1", role=Role.USER, company_id=company.id)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_logs_include_correlation_id_for_http(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.get(f"/orders/{uuid.uuid4()}", headers={"X-Correlation-Id": "abc-123"})
    assert response.status_code == 404

    records = [
        record for record in caplog.records if record.name == "graficontrol.request" and record.getMessage() == "http.request"
    ]
    assert records
    assert any(
        getattr(record, "correlation_id", None) == "abc-123"
        and getattr(record, "method", None) == "GET"
        and getattr(record, "path", None) == "/orders/{id}"
        and getattr(record, "status_code", None) == 404
        and isinstance(getattr(record, "duration_ms", None), float)
        for record in records
    )


def test_order_transition_logs_carry_order_context(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    created = client.post(
        "/orders",
        json={
            "description": "Log order",
            "total_value": "40.00",
            "delivery_date": (date.today() + timedelta(days=2)).isoformat(),
        },
    )
    order_id = created.json()["id"]

    response = client.post(
        f"/orders/{order_id}/transition",
        json={"status": "ready"},
        headers={"X-Correlation-Id": "log-corr-1"},
    )
    assert response.status_code == 200

    assert any(
        record.name == "graficontrol.orders"
        and record.getMessage() == "orders.transitioned"
        and getattr(record, "order_id", None) == order_id
        and getattr(record, "previous_status", None) == "in_progress"
        and getattr(record, "status", None) == "ready"
        and getattr(record, "correlation_id", None) == "log-corr-1"
        for record in caplog.records
    )


def test_json_formatter_keeps_known_fields_only() -> None:
    record = logging.LogRecord("graficontrol.test", logging.INFO, __file__, 1, "orders.created", None, None)
    record.order_id = "order-1"
    record.card_number = "4111111111111111"
    record.error = "x" * 900
    record.correlation_id = "fmt-corr-1"

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["msg"] == "orders.created"
    assert payload["level"] == "INFO"
    assert payload["correlation_id"] == "fmt-corr-1"
    assert payload["fields"]["order_id"] == "order-1"
    assert "card_number" not in payload["fields"]
    assert len(payload["fields"]["error"]) == 500
