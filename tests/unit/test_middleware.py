"""
Unit tests for the middleware pipeline, CORS and access logging.
"""

import json
import logging

import pytest

from staticserver.http.response import HTTPResponse, ResponseBuilder, text_response
from staticserver.http.status_codes import HTTPStatus
from staticserver.middleware import (
    CORSConfig,
    CORSMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
)


def ok_handler(request) -> HTTPResponse:
    return ResponseBuilder().text("ok").build()


class Recorder(Middleware):
    """Appends its tag on the way in and out."""

    def __init__(self, tag, trail):
        self.tag = tag
        self.trail = trail

    def __call__(self, request, next):
        self.trail.append(f"{self.tag}>")
        response = next(request)
        self.trail.append(f"<{self.tag}")
        return response


class TestPipeline:

    def test_order(self, make_request):
        trail = []
        pipeline = MiddlewarePipeline().use(Recorder("a", trail), Recorder("b", trail))

        pipeline.wrap(ok_handler)(make_request("/"))

        assert trail == ["a>", "b>", "<b", "<a"]
        assert len(pipeline) == 2

    def test_empty_pipeline_is_handler(self, make_request):
        app = MiddlewarePipeline().wrap(ok_handler)
        assert app(make_request("/")).body == b"ok"


class TestCORSMiddleware:

    EXPECTED = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": "Origin, Range, Content-Type, Accept, Authorization",
    }

    def test_headers_added(self, make_request):
        app = MiddlewarePipeline().add(CORSMiddleware()).wrap(ok_handler)
        response = app(make_request("/"))

        for name, value in self.EXPECTED.items():
            assert response.headers[name] == value

    def test_headers_added_to_errors(self, make_request):
        app = MiddlewarePipeline().add(CORSMiddleware()).wrap(
            lambda request: text_response(HTTPStatus.NOT_FOUND, "File not found")
        )
        response = app(make_request("/missing"))
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_preflight_short_circuits(self, make_request):
        def must_not_run(request):
            raise AssertionError("handler reached")

        app = MiddlewarePipeline().add(CORSMiddleware()).wrap(must_not_run)
        response = app(make_request("/video.mp4", method="OPTIONS"))

        assert response.status == HTTPStatus.NO_CONTENT
        assert response.headers["Access-Control-Allow-Methods"] == "GET, OPTIONS"

    def test_custom_policy(self, make_request):
        config = CORSConfig(allow_origin="https://app.example", allow_methods=["GET"])
        app = MiddlewarePipeline().add(CORSMiddleware(config)).wrap(ok_handler)
        response = app(make_request("/"))
        assert response.headers["Access-Control-Allow-Origin"] == "https://app.example"
        assert response.headers["Access-Control-Allow-Methods"] == "GET"


class TestLoggingMiddleware:

    def test_text_line(self, make_request, caplog):
        app = MiddlewarePipeline().add(LoggingMiddleware()).wrap(ok_handler)

        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            response = app(make_request("/hello.txt"))

        assert "X-Request-ID" not in response.headers
        line = caplog.records[-1].getMessage()
        assert '"GET /hello.txt" 200 2' in line
        assert line.startswith("127.0.0.1 ")

    def test_json_line(self, make_request, caplog):
        app = MiddlewarePipeline().add(LoggingMiddleware(log_format="json")).wrap(ok_handler)

        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            response = app(make_request("/x?y=1", Accept_Encoding="br"))

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["path"] == "/x?y=1"
        assert entry["status_code"] == 200
        assert len(entry["request_id"]) == 8
        assert "X-Request-ID" not in response.headers

    def test_unknown_length_logged_as_dash(self, make_request, caplog, public_dir):
        from staticserver.http.response import BodySource
        from staticserver.http.streams import FileStream

        def streaming(request):
            return (ResponseBuilder()
                .header("Content-Encoding", "gzip")
                .stream(FileStream(str(public_dir / "app.js")), BodySource.ENCODED_FILE)
                .build())

        app = MiddlewarePipeline().add(LoggingMiddleware()).wrap(streaming)
        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            app(make_request("/app.js")).close()

        assert " 200 - gzip " in caplog.records[-1].getMessage()

    def test_failure_logged_and_reraised(self, make_request, caplog):
        def boom(request):
            raise RuntimeError("disk on fire")

        app = MiddlewarePipeline().add(LoggingMiddleware()).wrap(boom)
        with caplog.at_level(logging.ERROR, logger="staticserver.access"):
            with pytest.raises(RuntimeError):
                app(make_request("/"))

        assert "disk on fire" in caplog.text
