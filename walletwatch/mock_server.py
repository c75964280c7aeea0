# walletwatch/mock_server.py
"""In-memory stand-in for the FileMaker Data API.

Implements the session, find and record endpoints the client uses, with a
session ceiling that answers code 812 once reached. Used by the test-suite
and for running the app without a real FileMaker Server.
"""
import logging
import os
import secrets
import threading
from datetime import datetime
from functools import wraps

from flask import Flask, jsonify, request

logger = logging.getLogger("walletwatch.mock_server")

PREFIX = "/fmi/data/vLatest/databases/<database>"
DEFAULT_LAYOUTS = ("test_table_login", "Category", "Expenses")
DATE_FIELDS = ("Date",)
TIMESTAMP_FORMAT = "%m/%d/%Y %H:%M:%S"


class DataApiState:
    """Records, live sessions and request counters behind the fake server"""

    def __init__(self, database, username, password, max_sessions, layouts):
        self.database = database
        self.username = username
        self.password = password
        self.max_sessions = max_sessions
        self.layouts = {name: {} for name in layouts}
        self.sessions = set()
        self.sessions_opened = 0
        self.close_requests = 0
        self.requests = []
        self._next_id = 1
        self.lock = threading.Lock()

    def seed(self, layout, field_data, record_id=None):
        with self.lock:
            if record_id is None:
                record_id = str(self._next_id)
                self._next_id += 1
            self.layouts[layout][str(record_id)] = {"fieldData": dict(field_data), "modId": 0}
            return str(record_id)

    def reset_counters(self):
        with self.lock:
            self.sessions_opened = 0
            self.close_requests = 0
            self.requests = []


def fm_response(response=None, code="0", message="OK", status=200):
    return jsonify({"response": response if response is not None else {},
                    "messages": [{"code": code, "message": message}]}), status


def _matches(field_data, criteria):
    for field, wanted in criteria.items():
        actual = "" if field_data.get(field) is None else str(field_data.get(field))
        wanted = str(wanted)
        if wanted.startswith("=="):
            if actual != wanted[2:]:
                return False
        elif wanted.startswith("="):
            if actual != wanted[1:]:
                return False
        elif actual != wanted:
            return False
    return True


def _valid_date(value):
    try:
        datetime.strptime(str(value), "%m/%d/%Y")
        return True
    except ValueError:
        return False


def create_app(database="WalletWatch", username="admin", password="admin",
               max_sessions=10, layouts=DEFAULT_LAYOUTS):
    app = Flask(__name__)
    state = DataApiState(database, username, password, max_sessions, layouts)
    app.extensions["data_api"] = state

    def check_database(view):
        @wraps(view)
        def wrapper(database, *args, **kwargs):
            if database != state.database:
                return fm_response(code="802", message="Unable to open file", status=404)
            with state.lock:
                state.requests.append((request.method, request.path))
            return view(*args, **kwargs)
        return wrapper

    def require_token(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            header = request.headers.get("Authorization", "")
            token = header[len("Bearer "):] if header.startswith("Bearer ") else None
            with state.lock:
                valid = token in state.sessions
            if not valid:
                return fm_response(code="952", message="Invalid FileMaker Data API token (*)", status=401)
            return view(*args, **kwargs)
        return wrapper

    def get_layout(name):
        return state.layouts.get(name)

    # ---------------- Sessions ----------------
    @app.route(f"{PREFIX}/sessions", methods=["POST"])
    @check_database
    def open_session():
        auth = request.authorization
        if not auth or auth.username != state.username or auth.password != state.password:
            return fm_response(code="212", message="Invalid user account and/or password; please try again",
                               status=401)
        with state.lock:
            if len(state.sessions) >= state.max_sessions:
                logger.warning("Session ceiling reached")
                return fm_response(code="812", message="Exceeded host's capacity", status=500)
            token = secrets.token_hex(16)
            state.sessions.add(token)
            state.sessions_opened += 1
        return fm_response({"token": token})

    @app.route(f"{PREFIX}/sessions/<token>", methods=["DELETE"])
    @check_database
    def close_session(token):
        with state.lock:
            state.close_requests += 1
            if token not in state.sessions:
                return fm_response(code="952", message="Invalid FileMaker Data API token (*)", status=401)
            state.sessions.discard(token)
        return fm_response()

    # ---------------- Records ----------------
    @app.route(f"{PREFIX}/layouts/<layout>/_find", methods=["POST"])
    @check_database
    @require_token
    def find_records(layout):
        records = get_layout(layout)
        if records is None:
            return fm_response(code="105", message="Layout is missing", status=500)
        data = request.get_json(force=True, silent=True) or {}
        queries = data.get("query") or []
        limit = int(data.get("limit", 100))
        with state.lock:
            found = [
                {"fieldData": dict(rec["fieldData"]), "recordId": rid, "modId": str(rec["modId"])}
                for rid, rec in records.items()
                if any(_matches(rec["fieldData"], q) for q in queries)
            ]
            total = len(records)
        if not found:
            return fm_response(code="401", message="No records match the request", status=401)
        returned = found[:limit]
        return fm_response({
            "dataInfo": {
                "database": state.database, "layout": layout, "table": layout,
                "totalRecordCount": total, "foundCount": len(found), "returnedCount": len(returned),
            },
            "data": returned,
        })

    @app.route(f"{PREFIX}/layouts/<layout>/records", methods=["POST"])
    @check_database
    @require_token
    def create_record(layout):
        records = get_layout(layout)
        if records is None:
            return fm_response(code="105", message="Layout is missing", status=500)
        field_data = (request.get_json(force=True, silent=True) or {}).get("fieldData")
        if not isinstance(field_data, dict):
            return fm_response(code="960", message="Parameter is invalid", status=400)
        for name in DATE_FIELDS:
            if name in field_data and not _valid_date(field_data[name]):
                return fm_response(code="500", message="Date value does not meet validation entry options",
                                   status=500)
        field_data.setdefault("CreationTimestamp", datetime.now().strftime(TIMESTAMP_FORMAT))
        record_id = state.seed(layout, field_data)
        return fm_response({"recordId": record_id, "modId": "0"})

    @app.route(f"{PREFIX}/layouts/<layout>/records/<record_id>", methods=["PATCH"])
    @check_database
    @require_token
    def update_record(layout, record_id):
        records = get_layout(layout)
        if records is None:
            return fm_response(code="105", message="Layout is missing", status=500)
        field_data = (request.get_json(force=True, silent=True) or {}).get("fieldData") or {}
        with state.lock:
            record = records.get(record_id)
            if record is None:
                return fm_response(code="101", message="Record is missing", status=500)
            record["fieldData"].update(field_data)
            record["modId"] += 1
            mod_id = record["modId"]
        return fm_response({"modId": str(mod_id)})

    @app.route(f"{PREFIX}/layouts/<layout>/records/<record_id>", methods=["DELETE"])
    @check_database
    @require_token
    def delete_record(layout, record_id):
        records = get_layout(layout)
        if records is None:
            return fm_response(code="105", message="Layout is missing", status=500)
        with state.lock:
            if records.pop(record_id, None) is None:
                return fm_response(code="101", message="Record is missing", status=500)
        return fm_response()

    return app


# ---------------- Run ----------------
if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app = create_app(
        database=os.environ.get("FILEMAKER_DATABASE", "WalletWatch"),
        username=os.environ.get("FILEMAKER_USERNAME", "admin"),
        password=os.environ.get("FILEMAKER_PASSWORD", "admin"),
    )
    app.run(debug=True, host='127.0.0.1', port=int(os.environ.get("MOCK_PORT", 5050)))
