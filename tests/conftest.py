import json
import threading

import pytest
import requests
from werkzeug.serving import make_server

from walletwatch import FileMakerClient, FileMakerConfig
from walletwatch.mock_server import create_app

DATABASE = "WalletWatch"
USERNAME = "admin"
PASSWORD = "admin"


@pytest.fixture
def server():
    """Stand-in Data API on an ephemeral localhost port; yields its state"""
    app = create_app(database=DATABASE, username=USERNAME, password=PASSWORD)
    srv = make_server("127.0.0.1", 0, app, threaded=True)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    state = app.extensions["data_api"]
    state.url = f"http://127.0.0.1:{srv.server_port}"
    yield state
    srv.shutdown()
    thread.join(timeout=5)


@pytest.fixture
def config(server):
    return FileMakerConfig(server_url=server.url, database=DATABASE,
                           username=USERNAME, password=PASSWORD)


@pytest.fixture
def client(config):
    c = FileMakerClient(config)
    yield c
    c.close()


def make_response(status_code, payload=None, raw=None):
    resp = requests.Response()
    resp.status_code = status_code
    if raw is not None:
        resp._content = raw
    else:
        resp._content = json.dumps(payload).encode("utf-8")
    return resp


class StubHTTP(requests.Session):
    """requests.Session that answers from a list instead of the network"""

    def __init__(self, responses):
        super().__init__()
        self.responses = list(responses)
        self.sent = []

    def send(self, request, **kwargs):
        self.sent.append((request, kwargs))
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def offline_config():
    return FileMakerConfig(server_url="http://filemaker.invalid", database=DATABASE,
                           username=USERNAME, password=PASSWORD)
