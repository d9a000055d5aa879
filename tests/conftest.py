import os
import time
import threading

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from flask import Flask, Response, request
from werkzeug.serving import make_server

PAYLOAD_SIZE = 2 * 1024 * 1024
TINY_SIZE = 100
SLOW_CHUNK = 64 * 1024
SLOW_CHUNKS = 8
SLOW_DELAY = 0.02
USERNAME = "viewer"
PASSWORD = "s3cret"


def create_video_app(payload: bytes, tiny: bytes):
    app = Flask(__name__)

    @app.route("/video.mkv")
    def video():
        return Response(payload, mimetype="video/x-matroska")

    @app.route("/tiny.mkv")
    def tiny_video():
        return Response(tiny, mimetype="video/x-matroska")

    @app.route("/slow.mkv")
    def slow_video():
        # fixed-rate transport: one chunk every SLOW_DELAY seconds
        body = payload[: SLOW_CHUNK * SLOW_CHUNKS]

        def generate():
            for i in range(0, len(body), SLOW_CHUNK):
                time.sleep(SLOW_DELAY)
                yield body[i:i + SLOW_CHUNK]

        return Response(generate(), mimetype="video/x-matroska",
                        headers={"Content-Length": str(len(body))})

    @app.route("/nolength.mkv")
    def no_length():
        def generate():
            yield payload[:1024]

        return Response(generate(), mimetype="video/x-matroska")

    @app.route("/private.mkv")
    def private_video():
        auth = request.authorization
        if not auth or auth.username != USERNAME or auth.password != PASSWORD:
            return Response("denied", status=401, headers={"WWW-Authenticate": 'Basic realm="video"'})
        return Response(payload, mimetype="video/x-matroska")

    return app


@pytest.fixture(scope="session")
def payload():
    return os.urandom(PAYLOAD_SIZE)


@pytest.fixture(scope="session")
def tiny_payload():
    return os.urandom(TINY_SIZE)


@pytest.fixture(scope="session")
def video_server(payload, tiny_payload):
    """Base URL of a local HTTP server serving the test videos."""
    app = create_video_app(payload, tiny_payload)
    server = make_server("127.0.0.1", 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.port}"
    server.shutdown()
    thread.join(timeout=5)


class FakeResponse:
    """
    Stand-in for a streamed requests.Response.
    Exception instances in `chunks` are raised when reached.
    """

    def __init__(self, chunks=(), headers=None, status_code=200, delay=0.0):
        self.chunks = list(chunks)
        self.headers = CaseInsensitiveDict(headers or {})
        self.status_code = status_code
        self.delay = delay
        self.closed = False
        self.requested_chunk_size = None

    def iter_content(self, chunk_size=1):
        self.requested_chunk_size = chunk_size
        return self._generate()

    def _generate(self):
        for chunk in self.chunks:
            if self.delay:
                time.sleep(self.delay)
            if isinstance(chunk, BaseException):
                raise chunk
            yield chunk

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_response():
    return FakeResponse
