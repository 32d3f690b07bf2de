"""Tests for the ASGI adapter."""

import json

import pytest

from resthandler import create, create_asgi_app
from resthandler.adapters import ASGIAdapter, ASGIRequest, ASGIResponse

pytestmark = pytest.mark.anyio


def make_app():
    def get_car(rest):
        rest.send({"_id": rest.params["carId"], "query": dict(rest.query_params)})

    def echo(rest):
        rest.get_body(lambda err, body: rest.send(body))

    def broken(rest):
        raise RuntimeError("boom")

    def get_file(rest):
        rest.send({"name": rest.params["name"]})

    handler = create({
        "routes": [
            {"path": "/cars/:carId", "method": "GET", "handler": get_car},
            {"path": "/echo", "method": "POST", "handler": echo},
            {"path": "/broken", "method": "GET", "handler": broken},
            {"path": "/files/:name", "method": "GET", "handler": get_file},
        ]
    })
    return create_asgi_app(handler)


def http_scope(method, path, query_string=b""):
    return {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string,
        "headers": [[b"accept", b"application/json"]],
    }


def receiver(*chunks):
    messages = [
        {"type": "http.request", "body": chunk, "more_body": index < len(chunks) - 1}
        for index, chunk in enumerate(chunks)
    ] or [{"type": "http.request", "body": b"", "more_body": False}]

    async def receive():
        return messages.pop(0)

    return receive


async def call(app, scope, receive):
    sent = []

    async def send(message):
        sent.append(message)

    await app(scope, receive, send)
    return sent


def headers_of(start_message):
    return {name.decode("latin-1"): value.decode("latin-1") for name, value in start_message["headers"]}


class TestASGIAdapter:
    """Test running a dispatcher behind the ASGI interface."""

    async def test_json_response(self):
        sent = await call(make_app(), http_scope("GET", "/cars/7", b"color=red"), receiver())

        assert len(sent) == 2
        start, body = sent
        assert start["type"] == "http.response.start"
        assert start["status"] == 200
        headers = headers_of(start)
        assert headers["Content-Type"] == "application/json"
        assert headers["content-length"] == str(len(body["body"]))
        assert json.loads(body["body"]) == {"_id": "7", "query": {"color": "red"}}

    async def test_body_chunks(self):
        sent = await call(make_app(), http_scope("POST", "/echo"), receiver(b"this ", b"is ", b"a ", b"test"))

        start, body = sent
        assert start["status"] == 200
        assert headers_of(start)["Content-Type"] == "text/plain"
        assert body["body"] == b"this is a test"

    async def test_not_found(self):
        sent = await call(make_app(), http_scope("GET", "/nowhere"), receiver())

        assert sent[0]["status"] == 404
        assert sent[1]["body"] == b"Not Found"

    async def test_unhandled_exception_becomes_500(self):
        sent = await call(make_app(), http_scope("GET", "/broken"), receiver())

        assert sent[0]["status"] == 500
        assert headers_of(sent[0])["Content-Type"] == "text/plain"
        assert sent[1]["body"] == b"Internal Server Error"

    async def test_unhandled_exception_on_other_method_is_not_found(self):
        sent = await call(make_app(), http_scope("POST", "/broken"), receiver())

        assert sent[0]["status"] == 404

    async def test_encoded_slash_stays_in_one_segment(self):
        scope = http_scope("GET", "/files/a/b")
        scope["raw_path"] = b"/files/a%2Fb"

        sent = await call(make_app(), scope, receiver())

        assert sent[0]["status"] == 200
        assert json.loads(sent[1]["body"]) == {"name": "a%2Fb"}

    async def test_decoded_path_used_without_raw_path(self):
        sent = await call(make_app(), http_scope("GET", "/files/a/b"), receiver())

        assert sent[0]["status"] == 404

    async def test_non_http_scope(self):
        sent = await call(make_app(), {"type": "websocket", "path": "/"}, receiver())

        assert sent[0]["status"] == 404
        assert sent[1]["body"] == b"Not Found"

    async def test_lifespan(self):
        messages = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]

        async def receive():
            return messages.pop(0)

        sent = await call(make_app(), {"type": "lifespan"}, receive)

        assert sent == [
            {"type": "lifespan.startup.complete"},
            {"type": "lifespan.shutdown.complete"},
        ]

    async def test_create_asgi_app(self):
        handler = create()
        app = create_asgi_app(handler)

        assert isinstance(app, ASGIAdapter)
        assert app.handler is handler


class TestASGIRequestResponse:
    """Test the transport wrappers directly."""

    async def test_request_url_includes_query(self):
        request = ASGIRequest(http_scope("GET", "/cars", b"a=1"), receiver())

        assert request.method == "GET"
        assert request.url == "/cars?a=1"
        assert request.headers == {"accept": "application/json"}

    async def test_request_stops_on_disconnect(self):
        messages = [
            {"type": "http.request", "body": b"part", "more_body": True},
            {"type": "http.disconnect"},
        ]

        async def receive():
            return messages.pop(0)

        request = ASGIRequest(http_scope("POST", "/"), receive)
        chunks = [chunk async for chunk in request.iter_body()]

        assert chunks == [b"part"]

    async def test_response_headers_are_case_insensitive(self):
        sent = []

        async def send(message):
            sent.append(message)

        response = ASGIResponse(send)
        response.set_header("Content-Type", "text/plain")

        assert response.get_header("content-type") == "text/plain"

        response.status_code = 201
        await response.end(b"ok")

        assert response.sent
        assert sent[0]["status"] == 201
        assert sent[1]["body"] == b"ok"
