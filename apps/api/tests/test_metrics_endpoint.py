from __future__ import annotations

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
def configure_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("METRICS_ENABLED", "true")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def company(db_session: Session) -> Company:
    company = Company(name="Metrics Print Shop")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture()
def current_user(company: Company) -> AuthUser:
    return AuthUser(sub="metrics-admin", role=Role.SUPERADMIN, company_id=company.id)


@pytest.fixture()
def client(db_session: Session, current_user: AuthUser) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_auth_user() -> AuthUser:
        return current_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_auth_user

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def test_metrics_endpoint_exposes_http_and_order_metrics(client: TestClient) -> None:
    health = client.get("/health")
    assert health.status_code == 200

    order = client.post(
        "/orders",
        json={
            "description": "Metrics order",
            "total_value": "75.00",
            "delivery_date": (date.today() + timedelta(days=5)).isoformat(),
        },
    )
    assert order.status_code == 201
    for target in ("ready", "completed"):
        response = client.post(f"/orders/{order.json()['id']}/transition", json={"status": target})
        assert response.status_code == 200

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    body = metrics.text

    assert "http_requests_total" in body
    assert "http_request_duration_seconds" in body
    assert "order_transitions_total" in body
    assert "revenue_entries_created_total" in body

    assert 'path="/health"' in body
    assert 'path="/orders/{id}/transition"' in body
    assert 'status="completed"' in body
    assert 'trigger="transition"' in body


def test_metrics_require_superadmin(client: TestClient, current_user: AuthUser) -> None:
    current_user.role = Role.ADMIN

    response = client.get("/metrics")

    assert response.status_code == 403


def test_metrics_hidden_when_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_ENABLED", "false")
    get_settings.cache_clear()

    response = client.get("/metrics")

    assert response.status_code == 404
