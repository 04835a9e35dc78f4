"""Shared fixtures: in-memory stores, a scripted catalog and the two apps."""

import os

# Set before any garage_broker import reads the environment.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CATALOG_DATABASE_URL", "sqlite://")

from collections.abc import Generator  # noqa: E402
from typing import Any  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import Engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from garage_broker.catalog.app import create_catalog_app, init_catalog_db  # noqa: E402
from garage_broker.catalog.models import Category, Garage, Service, Subcategory  # noqa: E402
from garage_broker.core.config import Settings  # noqa: E402
from garage_broker.db.init_db import init_db  # noqa: E402
from garage_broker.db.models import Car, User  # noqa: E402
from garage_broker.db.session import build_engine, build_session_factory  # noqa: E402
from garage_broker.services.catalog_client import CatalogClient  # noqa: E402
from main import create_app  # noqa: E402

CATALOG_URL = "http://catalog.test/api"

# Reference point used across the geo tests (Casablanca).
CASABLANCA = (33.5731, -7.5898)


class FakeCatalog:
    """Scripted catalog API served through httpx.MockTransport."""

    def __init__(self):
        self.garages: dict[int, dict[str, Any]] = {}
        self.services: dict[int, dict[str, Any]] = {}
        self.down = False
        self.failing_garages: set[int] = set()
        self.requests: list[str] = []

    def add_garage(self, garage_id: int, name: str, address: str | None = None, **extra: Any) -> None:
        self.garages[garage_id] = {"id": garage_id, "name": name, "address": address, **extra}

    def add_service(self, service_id: int, garage_id: int, name: str) -> None:
        self.services[service_id] = {"id": service_id, "garageId": garage_id, "name": name}

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url.path)
        if self.down:
            raise httpx.ConnectError("catalog unreachable", request=request)

        kind, raw_id = request.url.path.rstrip("/").split("/")[-2:]
        item_id = int(raw_id)
        if kind == "garages":
            if item_id in self.failing_garages:
                return httpx.Response(503, json={"message": "unavailable"})
            if item_id in self.garages:
                return httpx.Response(200, json={"garage": self.garages[item_id]})
        if kind == "services" and item_id in self.services:
            return httpx.Response(200, json={"service": self.services[item_id]})
        return httpx.Response(404, json={"message": "not found"})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        catalog_database_url="sqlite://",
        catalog_api_url=CATALOG_URL,
        enrichment_max_workers=4,
        app_env="development",
        log_level="WARNING",
    )


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine: Engine) -> Generator[Session, None, None]:
    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def people(db: Session) -> dict[str, Any]:
    """User 1 owns car 1; user 2 owns cars 2 and 3; car 4 has no owner."""
    amina = User(id=1, name="Amina Alaoui", email="amina@example.com", phone="+212600000001")
    youssef = User(id=2, name="Youssef Bennani", email="youssef@example.com")
    db.add_all([amina, youssef])
    db.flush()
    db.add_all(
        [
            Car(id=1, mark="Dacia", model="Logan", matricule="12345-A-6", year=2019, user_id=1),
            Car(id=2, mark="Renault", model="Clio", matricule="23456-B-1", year=2021, user_id=2),
            Car(id=3, mark="Peugeot", model="208", matricule="34567-D-6", year=2020, user_id=2),
            Car(id=4, mark="Fiat", model="Tipo", matricule="45678-H-2", year=2018, user_id=None),
        ]
    )
    db.commit()
    return {"users": [amina, youssef]}


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    catalog = FakeCatalog()
    catalog.add_garage(1, "Garage Atlas", "12 Bd Zerktouni, Casablanca", latitude=33.5800, longitude=-7.6000)
    catalog.add_garage(2, "Auto Sebaa", "Ain Sebaa, Casablanca", latitude=33.6050, longitude=-7.5300)
    catalog.add_garage(3, "Garage Rabat Agdal", "Agdal, Rabat", latitude=34.0209, longitude=-6.8416)
    catalog.add_garage(4, "Garage Sans GPS", "Inconnu")
    catalog.add_service(5, 1, "Vidange")
    catalog.add_service(6, 2, "Freinage")
    catalog.add_service(7, 3, "Diagnostic")
    return catalog


@pytest.fixture
def catalog_client(fake_catalog: FakeCatalog) -> Generator[CatalogClient, None, None]:
    client = CatalogClient(CATALOG_URL, max_workers=4, transport=httpx.MockTransport(fake_catalog.handle))
    yield client
    client.close()


@pytest.fixture
def client(settings, engine, people, catalog_client) -> Generator[TestClient, None, None]:
    app = create_app(settings=settings, engine=engine, catalog=catalog_client)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


# Catalog store


@pytest.fixture
def catalog_engine() -> Generator[Engine, None, None]:
    engine = build_engine("sqlite://")
    init_catalog_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def catalog_db(catalog_engine: Engine) -> Generator[Session, None, None]:
    session = build_session_factory(catalog_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog_garages(catalog_db: Session) -> dict[str, Garage]:
    """Three garages within 50 km of Casablanca, two beyond, plus edge cases.

    Oil change (10) is offered by Atlas, Mohammedia, Rabat and the closed garage;
    brakes (11) only by Atlas; paint (20) only by Sebaa.
    """
    mechanics = Category(id=1, name="Mécanique")
    body = Category(id=2, name="Carrosserie")
    catalog_db.add_all([mechanics, body])
    catalog_db.flush()
    oil = Subcategory(id=10, name="Vidange", category_id=1)
    brakes = Subcategory(id=11, name="Freins", category_id=1)
    paint = Subcategory(id=20, name="Peinture", category_id=2)
    catalog_db.add_all([oil, brakes, paint])
    catalog_db.flush()

    garages = {
        "center": Garage(id=1, name="Garage Atlas", address="Casablanca centre", latitude=33.5800, longitude=-7.6000, category_id=1),
        "sebaa": Garage(id=2, name="Auto Sebaa", address="Ain Sebaa", latitude=33.6050, longitude=-7.5300, category_id=2),
        "mohammedia": Garage(id=3, name="Garage Mohammedia", address="Mohammedia", latitude=33.6861, longitude=-7.3829, category_id=1),
        "rabat": Garage(id=4, name="Garage Rabat Agdal", address="Rabat", latitude=34.0209, longitude=-6.8416, category_id=1),
        "marrakech": Garage(id=5, name="Garage Gueliz", address="Marrakech", latitude=31.6295, longitude=-7.9811, category_id=2),
        "no_gps": Garage(id=6, name="Garage Sans GPS", address="Inconnu", latitude=None, longitude=None, category_id=1),
        "closed": Garage(id=7, name="Garage Fermé", address="Casablanca", latitude=33.5735, longitude=-7.5900, is_available=False, category_id=1),
        "full": Garage(id=8, name="Garage Complet", address="Casablanca", latitude=33.5740, longitude=-7.5905, capacity=0, category_id=1),
    }
    garages["center"].subcategories = [oil, brakes]
    garages["sebaa"].subcategories = [paint]
    garages["mohammedia"].subcategories = [oil]
    garages["rabat"].subcategories = [oil]
    garages["closed"].subcategories = [oil]
    catalog_db.add_all(garages.values())
    catalog_db.flush()
    catalog_db.add_all(
        [
            Service(id=5, garage_id=1, name="Vidange", price=350.0, duration_minutes=45),
            Service(id=6, garage_id=1, name="Freinage", price=600.0, duration_minutes=90),
            Service(id=7, garage_id=2, name="Peinture", price=2500.0, duration_minutes=480),
        ]
    )
    catalog_db.commit()
    return garages


@pytest.fixture
def catalog_api(settings, catalog_engine, catalog_garages) -> Generator[TestClient, None, None]:
    app = create_catalog_app(settings=settings, engine=catalog_engine)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
