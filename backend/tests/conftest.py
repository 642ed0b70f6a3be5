import os

# Avant tout import backend.* : l'engine applicatif ne doit pas viser Postgres
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.api.deps import get_db
from backend.app.db.base import Base
from backend.app.db.models.models_v1 import Client, Organization, Product
from backend.app.main import app


@pytest.fixture(scope="function")
def engine():
    """
    Base SQLite en mémoire, neuve pour chaque test.

    StaticPool : une seule connexion partagée, sinon chaque connexion
    verrait sa propre base vide.
    """
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def api_client(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def organization(db_session) -> Organization:
    org = Organization(name="TEST-ORG", active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture
def make_product(db_session, organization):
    counter = {"n": 0}

    def _make(*, reserved_stock: int = 0, unlimited_stock: bool = False, current_stock: int = 100) -> Product:
        counter["n"] += 1
        product = Product(
            organization_id=organization.id,
            sku=f"TEST-SKU-{counter['n']}",
            name=f"TEST-PROD-{counter['n']}",
            current_stock=current_stock,
            reserved_stock=reserved_stock,
            unlimited_stock=unlimited_stock,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture
def client_record(db_session, organization) -> Client:
    client = Client(organization_id=organization.id, name="TEST-CLIENT", active=True)
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture
def reserved_of(db_session):
    """Lit reserved_stock en base (pas la valeur en cache de la session)."""

    def _read(product_id: int) -> int:
        db_session.expire_all()
        return db_session.get(Product, product_id).reserved_stock

    return _read
