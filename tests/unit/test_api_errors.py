import pytest
from flask import Flask, abort

from cloakworks.api.errors import GatewayError, register_error_handlers


@pytest.fixture()
def flask_client():
    app = Flask(__name__)
    register_error_handlers(app)

    @app.route("/bad")
    def bad():
        abort(400, "invalid payload")

    @app.route("/unauth")
    def unauth():
        abort(401)

    @app.route("/crash")
    def crash():
        raise RuntimeError("boom")

    @app.route("/upstream")
    def upstream():
        raise GatewayError("product-service", "connection refused")

    @app.route("/only-post", methods=["POST"])
    def only_post():
        return "ok"

    with app.test_client() as client:
        yield client


def test_bad_request_returns_json(flask_client):
    response = flask_client.get("/bad")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Bad Request", "message": "invalid payload"}


def test_unauthorized_returns_bearer_challenge(flask_client):
    response = flask_client.get("/unauth")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_unknown_route_returns_json_404(flask_client):
    response = flask_client.get("/nowhere")
    assert response.status_code == 404
    assert response.get_json()["error"] == "Not Found"


def test_method_not_allowed_returns_json(flask_client):
    response = flask_client.get("/only-post")
    assert response.status_code == 405
    assert response.get_json()["error"] == "Method Not Allowed"


def test_unhandled_exception_logged_and_hidden(flask_client, caplog):
    with caplog.at_level("ERROR", logger="cloakworks.api.errors"):
        response = flask_client.get("/crash")

    assert response.status_code == 500
    assert response.get_json() == {
        "error": "Internal Server Error",
        "message": "An unexpected error occurred",
    }
    assert "boom" in caplog.text


def test_gateway_error_maps_to_502(flask_client):
    response = flask_client.get("/upstream")
    assert response.status_code == 502
    payload = response.get_json()
    assert payload["error"] == "Bad Gateway"
    assert "product-service" in payload["message"]
    assert "connection refused" not in payload["message"]
