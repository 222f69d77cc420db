import logging


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.text == "ok"


def test_metrics_counts_requests(client):
    client.get("/api/products")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert 'path="/api/products"' in resp.text


def test_openapi_documents_products(client):
    resp = client.get("/openapi.json")
    assert resp.status_code == 200
    paths = resp.json()["paths"]
    assert set(paths["/api/products"]) == {"get", "post"}
    assert set(paths["/api/products/{id}"]) == {"get", "put", "patch", "delete"}
    post = paths["/api/products"]["post"]
    assert "price" in post["requestBody"]["content"]["application/json"]["schema"]["properties"]


def test_docs_served(client):
    resp = client.get("/docs")
    assert resp.status_code == 200
    assert "swagger" in resp.text.lower()


def test_allowed_origin(client):
    resp = client.get("/api/products", headers={"Origin": "http://localhost:5173"})
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_foreign_origin_rejected(client):
    resp = client.get("/api/products", headers={"Origin": "http://evil.example"})
    assert resp.status_code == 403
    assert "error" in resp.json()


def test_same_origin_allowed(client):
    resp = client.get("/api/products", headers={"Origin": "http://testserver"})
    assert resp.status_code == 200


def test_preflight_from_frontend(client):
    resp = client.options(
        "/api/products",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_metrics_label_by_route_template(client, product):
    client.get(f"/api/products/{product['id']}")
    text = client.get("/metrics").text
    assert 'path="/api/products/{id}"' in text
    assert f'path="/api/products/{product["id"]}"' not in text


def test_requests_are_logged(client, caplog):
    caplog.set_level(logging.INFO)
    client.get("/api/products")
    events = [r.msg for r in caplog.records if isinstance(r.msg, dict)]
    finished = [e for e in events if e.get("event") == "request_finished"]
    assert finished
    assert finished[-1]["path"] == "/api/products"
    assert finished[-1]["status_code"] == 200
