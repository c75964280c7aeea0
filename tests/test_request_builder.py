import json
from datetime import date
from decimal import Decimal

import pytest

from walletwatch.config import FileMakerConfig
from walletwatch.errors import ConfigurationError, EncodingError, InvalidURL
from walletwatch.request_builder import RequestBuilder, query_value


@pytest.fixture
def builder():
    cfg = FileMakerConfig(server_url="https://fm.example.com/", database="Wallet Watch",
                          username="u", password="p")
    return RequestBuilder(cfg)


def test_build_url(builder):
    url = builder.build_url(builder.find_endpoint("test_table_login"))
    assert url == "https://fm.example.com/fmi/data/vLatest/databases/Wallet%20Watch/layouts/test_table_login/_find"


def test_endpoints(builder):
    assert builder.sessions_endpoint() == "sessions"
    assert builder.sessions_endpoint("tok") == "sessions/tok"
    assert builder.records_endpoint("Expenses") == "layouts/Expenses/records"
    assert builder.records_endpoint("Expenses", 12) == "layouts/Expenses/records/12"


def test_placeholder_database_is_rejected():
    cfg = FileMakerConfig(server_url="https://fm.example.com", database="YOUR_DATABASE_NAME",
                          username="u", password="p")
    with pytest.raises(ConfigurationError):
        RequestBuilder(cfg).build_url("sessions")


def test_unusable_server_url():
    cfg = FileMakerConfig(server_url="not a url", database="DB", username="u", password="p")
    with pytest.raises(InvalidURL):
        RequestBuilder(cfg).build_url("sessions")


def test_create_request_with_token(builder):
    req = builder.create_request("https://fm.example.com/x", "post", body=b"{}", token="tok")

    assert req.method == "POST"
    assert req.headers["Content-Type"] == "application/json"
    assert req.headers["Authorization"] == "Bearer tok"
    assert req.data == b"{}"


def test_create_request_without_token(builder):
    req = builder.create_request("https://fm.example.com/x", "DELETE")
    assert "Authorization" not in req.headers


def test_find_query(builder):
    body = json.loads(builder.create_find_query({"EmailAddress": "==a@x.com"}))
    assert body == {"query": [{"EmailAddress": "==a@x.com"}], "limit": 1}


def test_find_query_with_fields_normalizes_values(builder):
    body = json.loads(builder.create_find_query_with_fields(
        {"UserID": "==5", "IsActive": True, "Archived": False, "Count": 3}))

    assert body == {"query": [{"UserID": "==5", "IsActive": "==1", "Archived": "==0", "Count": "==3"}],
                    "limit": 100}


def test_query_value_keeps_operators():
    assert query_value(">10") == ">10"
    assert query_value(2.5) == "==2.5"


def test_record_body(builder):
    body = json.loads(builder.create_record_body({"Amount": Decimal("42.50"), "Date": "01/15/2026"}))
    assert body == {"fieldData": {"Amount": 42.5, "Date": "01/15/2026"}}


def test_record_body_encoding_error(builder):
    with pytest.raises(EncodingError):
        builder.create_record_body({"Date": date(2026, 1, 15)})
