"""
Tests for the health check endpoint.
"""


def test_health_check_returns_200(client):
    """
    Verify the health endpoint responds with HTTP 200.

    Load balancers poll this route; it must answer even when
    the database check fails.
    """
    response = client.get("/health")
    assert response.status_code == 200


def test_health_check_returns_service_name(client):
    response = client.get("/health")
    data = response.json()
    assert data["service"] == "pos-ledger"


def test_health_check_reports_database_status(client):
    """
    Verify the response includes database connectivity status.

    The test database is reachable, so both the overall status and
    the database status are healthy.
    """
    data = client.get("/health").json()
    assert data["database"] == "healthy"
    assert data["status"] == "healthy"
