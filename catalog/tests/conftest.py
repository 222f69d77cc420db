import os

# Point the service at a throwaway database before the app is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["FRONTEND_URL"] = "http://localhost:5173"

import pytest
from fastapi.testclient import TestClient

from app.db import engine
from app.main import app
from app.models import Base


@pytest.fixture()
def client():
    Base.metadata.drop_all(bind=engine)
    with TestClient(app) as c:
        yield c
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def product(client):
    resp = client.post("/api/products", json={"name": "Mouse Testing", "price": 50})
    assert resp.status_code == 201
    return resp.json()["data"]
