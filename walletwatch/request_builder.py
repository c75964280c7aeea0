# walletwatch/request_builder.py
import json
from decimal import Decimal
from typing import Any, Dict, Optional
from urllib.parse import quote, urlparse

import requests

from .config import API_VERSION, FileMakerConfig
from .errors import ConfigurationError, EncodingError, InvalidURL


def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(payload) -> bytes:
    try:
        return json.dumps(payload, default=_json_default).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodingError() from exc


def query_value(value) -> str:
    """Render a find value in FileMaker's string-with-operator form"""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return f"=={1 if value else 0}"
    return f"=={value}"


class RequestBuilder:
    """Builds Data API requests for one configured database. Holds no session state."""

    def __init__(self, config: FileMakerConfig):
        self.config = config

    # ---------------- Endpoints ----------------
    def sessions_endpoint(self, token: Optional[str] = None) -> str:
        if token is None:
            return "sessions"
        return f"sessions/{quote(token, safe='')}"

    def find_endpoint(self, layout: str) -> str:
        return f"layouts/{quote(layout, safe='')}/_find"

    def records_endpoint(self, layout: str, record_id: Optional[str] = None) -> str:
        endpoint = f"layouts/{quote(layout, safe='')}/records"
        if record_id is not None:
            endpoint += f"/{quote(str(record_id), safe='')}"
        return endpoint

    def build_url(self, endpoint: str) -> str:
        if not self.config.is_configured:
            raise ConfigurationError(
                "Database name not configured. Set FILEMAKER_DATABASE or pass database= to FileMakerConfig")
        url = (f"{self.config.server_url}/fmi/data/{API_VERSION}/databases/"
               f"{quote(self.config.database, safe='')}/{endpoint}")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidURL()
        return url

    # ---------------- Requests ----------------
    def create_request(self, url: str, method: str, body: Optional[bytes] = None,
                       token: Optional[str] = None) -> requests.Request:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return requests.Request(method.upper(), url, headers=headers, data=body)

    # ---------------- Bodies ----------------
    def create_find_query(self, fields: Dict[str, str], limit: int = 1) -> bytes:
        return _dumps({"query": [dict(fields)], "limit": limit})

    def create_find_query_with_fields(self, fields: Dict[str, Any], limit: int = 100) -> bytes:
        query = {key: query_value(value) for key, value in fields.items()}
        return _dumps({"query": [query], "limit": limit})

    def create_record_body(self, field_data: Dict[str, Any]) -> bytes:
        return _dumps({"fieldData": dict(field_data)})
