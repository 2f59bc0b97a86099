def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["webhookUrl"] == "http://hooks.test/endpoint"
    assert body["totalJobs"] == 0
    assert body["store"] == "memory"


def test_ready(client):
    r = client.get("/api/ready")
    assert r.status_code == 200
    assert r.json()["ready"] is True


def test_request_id_is_echoed(client):
    r = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"
    assert client.get("/api/health").headers["X-Request-ID"]


def test_index_lists_endpoints(client):
    r = client.get("/api")
    assert r.status_code == 200
    assert "POST /api/jobs/:id/run" in r.json()["endpoints"]


def test_dashboard_page(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]
    assert "/jobs/stats/dashboard" in r.text
    assert "Activity (last 7 days)" in r.text
    assert "renderActivity(stats.activity)" in r.text
    assert "toggleDetails(" in r.text
