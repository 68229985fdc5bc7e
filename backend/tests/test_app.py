"""
App-level behaviour: health endpoints and the shared error envelope.
"""


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Canteen backend is running"}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestErrorEnvelope:

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/no-such-route")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "HTTP_ERROR"
        assert body["path"] == "/no-such-route"

    def test_api_error_carries_code(self, client):
        response = client.get("/menu/9999")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "Menu item not found",
            "error_code": "NOT_FOUND",
            "path": "/menu/9999",
        }

    def test_request_validation_is_422(self, client, customer_headers):
        response = client.post(
            "/orders",
            json={"items": [{"item_id": 1, "quantity": 0}]},
            headers=customer_headers,
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert "quantity" in body["error"]

    def test_missing_token_is_401(self, client):
        response = client.get("/orders")

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"
        assert response.headers["www-authenticate"] == "Bearer"
