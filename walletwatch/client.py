# walletwatch/client.py
"""FileMaker Data API client.

The only component that opens or closes sessions and talks HTTP. Every
domain operation runs inside ``session_scope``: the current session is
reused when one exists, otherwise one is opened for the operation and
closed again when the scope exits, whatever the outcome.
"""
import logging
from contextlib import contextmanager
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import requests

from .config import CLOSE_SESSION_TIMEOUT, FileMakerConfig
from .dates import format_filemaker_date, parse_record_date, parse_timestamp
from .errors import (
    CODE_CAPACITY, CODE_NO_RECORDS, CODE_OK, ApiError, AuthenticationFailed,
    CapacityExceeded, EmailAlreadyExists, FileMakerError, HttpError,
    InvalidResponse, NetworkError, UserNotFound, first_message,
    map_error_response,
)
from .models import (
    LIMIT_PERIODS, LIMIT_TYPES, THEMES, Category, Expense, ExpenseLimit,
    ExpenseType, User,
)
from .request_builder import RequestBuilder
from .session_store import SessionStore

logger = logging.getLogger("walletwatch.client")

T = TypeVar("T")

LOGIN_FIND_LIMIT = 1
CATEGORY_FIND_LIMIT = 100
EXPENSE_FIND_LIMIT = 500


def safe_json(resp):
    try:
        return resp.json()
    except ValueError:
        return None


def _clean(value) -> Optional[str]:
    """Stripped string, or None for missing/blank values"""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first_present(field_data: Dict[str, Any], *names) -> Optional[str]:
    for name in names:
        value = _clean(field_data.get(name))
        if value is not None:
            return value
    return None


def _to_decimal(value, record_id=None) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        logger.warning(f"Record {record_id}: unreadable amount {value!r}, using 0")
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    if amount < 0:
        logger.warning(f"Record {record_id}: negative amount {value!r}, using absolute value")
        amount = -amount
    return amount


class FileMakerClient:
    def __init__(self, config: FileMakerConfig, store: Optional[SessionStore] = None,
                 http: Optional[requests.Session] = None,
                 builder: Optional[RequestBuilder] = None):
        self.config = config
        self.store = store if store is not None else SessionStore()
        self.http = http if http is not None else requests.Session()
        self.builder = builder if builder is not None else RequestBuilder(config)

    def close(self):
        self.http.close()

    # ---------------- Transport ----------------
    def _send(self, request: requests.Request, timeout: float, label: str) -> requests.Response:
        """Send a prepared request. ``label`` names it in logs; URLs may carry a token."""
        prepared = self.http.prepare_request(request)
        try:
            response = self.http.send(prepared, timeout=timeout)
        except requests.RequestException as exc:
            logger.error(f"Network error on {label}: {type(exc).__name__}")
            raise NetworkError(str(exc), getattr(exc, "errno", None)) from exc
        if not isinstance(response, requests.Response):
            raise InvalidResponse()
        return response

    def _call(self, method: str, endpoint: str, token: str,
              body: Optional[bytes] = None) -> Tuple[int, Optional[dict]]:
        url = self.builder.build_url(endpoint)
        request = self.builder.create_request(url, method, body=body, token=token)
        response = self._send(request, timeout=self.config.timeout, label=f"{method} {endpoint}")
        logger.debug(f"{method} {endpoint} -> {response.status_code}")
        return response.status_code, safe_json(response)

    # ---------------- Sessions ----------------
    def authenticate(self) -> str:
        """Open a fresh caller-managed session, dropping any stored token first"""
        self.store.clear()
        token = self._open_session()
        self.store.set(token)
        return token

    def _open_session(self) -> str:
        url = self.builder.build_url(self.builder.sessions_endpoint())
        request = self.builder.create_request(url, "POST", body=b"{}")
        request.auth = (self.config.username, self.config.password)
        logger.info(f"Opening Data API session on {self.config.server_url}")
        response = self._send(request, timeout=self.config.timeout, label="POST sessions")
        payload = safe_json(response)

        if response.status_code == 200:
            if payload is None:
                raise InvalidResponse()
            token = (payload.get("response") or {}).get("token")
            if token:
                logger.info("Session opened")
                return token

        msg = first_message(payload)
        if msg is not None:
            code, text = msg
            logger.error(f"Authentication error [{code}] {text}")
            if code == CODE_CAPACITY:
                self.store.clear()
                raise CapacityExceeded()
            raise ApiError(code, text)
        if response.status_code == 200:
            raise AuthenticationFailed()
        logger.error(f"Authentication failed with status {response.status_code}")
        raise HttpError(response.status_code)

    def _close_session(self, token: str) -> None:
        """DELETE the session on the server. Failures are only logged; the server expires it anyway."""
        try:
            url = self.builder.build_url(self.builder.sessions_endpoint(token))
            request = self.builder.create_request(url, "DELETE", token=token)
            response = self._send(request, timeout=CLOSE_SESSION_TIMEOUT, label="DELETE sessions/<token>")
            if response.status_code == 200:
                logger.info("Session closed")
            else:
                logger.warning(f"Session close returned status {response.status_code}")
        except FileMakerError as exc:
            code = getattr(exc, "code", None)
            logger.warning(f"Session close failed: {type(exc).__name__} (Code: {code})")

    @contextmanager
    def session_scope(self):
        """Yield a usable token for the duration of the block.

        A session opened here is closed on exit, also on errors and
        interrupts. A session that already existed is left open.
        """
        token, created = self.store.acquire(self._open_session)
        if not created:
            logger.debug("Reusing existing session")
        try:
            yield token
        finally:
            if self.store.release(token):
                self._close_session(token)

    def with_session(self, operation: Callable[[str], T]) -> T:
        with self.session_scope() as token:
            return operation(token)

    def logout(self) -> None:
        token = self.store.get()
        if token is None:
            logger.info("Logout with no active session")
            return
        self.store.forget(token)
        self._close_session(token)

    # ---------------- Shared record helpers ----------------
    def _find(self, layout: str, body: bytes, token: str) -> Optional[List[dict]]:
        """Run a find; None when the server reports no matching records"""
        status, payload = self._call("POST", self.builder.find_endpoint(layout), token, body)
        if status == 200:
            if payload is None:
                raise InvalidResponse()
            return (payload.get("response") or {}).get("data") or []
        msg = first_message(payload)
        if msg is not None and msg[0] == CODE_NO_RECORDS:
            logger.info(f"No records match on {layout}")
            return None
        raise map_error_response(status, payload)

    def _create_record(self, layout: str, field_data: Dict[str, Any], token: str) -> str:
        body = self.builder.create_record_body(field_data)
        status, payload = self._call("POST", self.builder.records_endpoint(layout), token, body)
        if status in (200, 201):
            if payload is None:
                raise InvalidResponse()
            record_id = (payload.get("response") or {}).get("recordId")
            if record_id is not None:
                return str(record_id)
            msg = first_message(payload)
            if msg is not None and msg[0] != CODE_OK:
                raise ApiError(*msg)
            raise InvalidResponse()
        raise map_error_response(status, payload)

    def _patch_record(self, layout: str, record_id: str, field_data: Dict[str, Any], token: str) -> None:
        body = self.builder.create_record_body(field_data)
        endpoint = self.builder.records_endpoint(layout, record_id)
        status, payload = self._call("PATCH", endpoint, token, body)
        if status != 200:
            raise map_error_response(status, payload)

    def _delete_record(self, layout: str, record_id: str, token: str) -> None:
        endpoint = self.builder.records_endpoint(layout, record_id)
        status, payload = self._call("DELETE", endpoint, token)
        if status != 200:
            raise map_error_response(status, payload)

    # ---------------- Users ----------------
    def login_user(self, email: str, password: str) -> User:
        return self.with_session(lambda token: self._perform_login(email, password, token))

    def _perform_login(self, email, password, token) -> User:
        f = self.config.user_fields
        body = self.builder.create_find_query(
            {f.email: f"=={email}", f.password: f"=={password}"}, limit=LOGIN_FIND_LIMIT)
        records = self._find(self.config.login_layout, body, token)
        if not records:
            logger.info("Login failed: no matching user")
            raise UserNotFound()
        user = self._decode_user(records[0], email)
        logger.info(f"Login successful for user {user.user_id}")
        return user

    def _decode_user(self, record: dict, email: str) -> User:
        f = self.config.user_fields
        fd = record.get("fieldData") or {}

        theme = _clean(fd.get(f.theme))
        limit_type = (_clean(fd.get(f.expense_limit_type)) or "").lower()
        limit_period = (_clean(fd.get(f.expense_limit_period)) or "").lower()
        try:
            limit_value = float(_clean(fd.get(f.expense_limit_value)) or "")
        except ValueError:
            limit_value = None
        expense_limit = None
        if limit_type in LIMIT_TYPES and limit_period in LIMIT_PERIODS \
                and limit_value is not None and limit_value >= 0:
            expense_limit = ExpenseLimit(type=limit_type, value=limit_value, period=limit_period)

        try:
            pay_day = int(_clean(fd.get(f.pay_day)) or "")
        except ValueError:
            pay_day = None
        if pay_day is not None and not 1 <= pay_day <= 28:
            pay_day = None

        return User(
            user_id=str(record.get("recordId", "")),
            first_name=_clean(fd.get(f.first_name)) or "",
            last_name=_clean(fd.get(f.last_name)) or "",
            email=_clean(fd.get(f.email)) or email,
            currency=_clean(fd.get(f.currency)),
            theme=theme if theme in THEMES else None,
            expense_limit=expense_limit,
            pay_day=pay_day,
        )

    def email_exists(self, email: str) -> bool:
        return self.with_session(lambda token: self._check_email_exists(email, token))

    def _check_email_exists(self, email, token) -> bool:
        body = self.builder.create_find_query({self.config.user_fields.email: f"=={email}"})
        status, payload = self._call("POST", self.builder.find_endpoint(self.config.login_layout), token, body)
        if status == 200:
            if payload is None:
                raise InvalidResponse()
            response = payload.get("response") or {}
            found = (response.get("dataInfo") or {}).get("foundCount", 0)
            return found > 0
        msg = first_message(payload)
        if msg is not None and msg[0] == CODE_NO_RECORDS:
            return False
        raise map_error_response(status, payload)

    def create_user(self, first_name: str, last_name: str, email: str, password: str) -> bool:
        with self.session_scope():
            if self.email_exists(email):
                logger.info("Sign-up rejected: email already registered")
                raise EmailAlreadyExists()
            return self.with_session(
                lambda token: self._perform_create_user(first_name, last_name, email, password, token))

    def _perform_create_user(self, first_name, last_name, email, password, token) -> bool:
        f = self.config.user_fields
        field_data = {
            f.email: email,
            f.password: password,
            f.first_name: first_name,
            f.last_name: last_name,
        }
        body = self.builder.create_record_body(field_data)
        status, payload = self._call("POST", self.builder.records_endpoint(self.config.login_layout), token, body)
        if status not in (200, 201):
            raise map_error_response(status, payload)
        record_id = ((payload or {}).get("response") or {}).get("recordId")
        if record_id is None:
            msg = first_message(payload)
            if msg is None:
                raise InvalidResponse()
            if msg[0] != CODE_OK:
                raise ApiError(*msg)
        logger.info(f"User record created ({record_id})")
        return True

    def update_user_currency(self, user_id: str, currency: str) -> None:
        self._update_user(user_id, {self.config.user_fields.currency: currency})

    def update_user_theme(self, user_id: str, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"theme must be one of {THEMES}")
        self._update_user(user_id, {self.config.user_fields.theme: theme})

    def update_user_password(self, user_id: str, new_password: str) -> None:
        if not new_password:
            raise ValueError("password must not be empty")
        self._update_user(user_id, {self.config.user_fields.password: new_password})

    def update_user_expense_limit(self, user_id: str, limit_type: str, value: float, period: str) -> None:
        limit = ExpenseLimit(type=limit_type, value=value, period=period)
        f = self.config.user_fields
        self._update_user(user_id, {
            f.expense_limit_type: limit.type,
            f.expense_limit_value: limit.value,
            f.expense_limit_period: limit.period,
        })

    def update_user_pay_day(self, user_id: str, pay_day: Optional[int]) -> None:
        if pay_day is not None and not 1 <= pay_day <= 28:
            raise ValueError("pay_day must be between 1 and 28, or None for calendar month")
        self._update_user(user_id, {self.config.user_fields.pay_day: "" if pay_day is None else pay_day})

    def _update_user(self, user_id, field_data) -> None:
        self.with_session(
            lambda token: self._patch_record(self.config.login_layout, user_id, field_data, token))
        logger.info(f"Updated {', '.join(field_data)} for user {user_id}")

    def delete_account(self, user_id: str) -> None:
        self.with_session(lambda token: self._delete_record(self.config.login_layout, user_id, token))
        logger.info(f"Deleted account {user_id}")

    # ---------------- Categories ----------------
    def fetch_categories(self, user_id: str) -> List[Category]:
        return self.with_session(lambda token: self._perform_fetch_categories(user_id, token))

    def _perform_fetch_categories(self, user_id, token) -> List[Category]:
        f = self.config.category_fields
        query: Dict[str, Any] = {f.user_id: f"=={user_id}"}
        if self.config.filter_active_categories:
            query[f.is_active] = True
        body = self.builder.create_find_query_with_fields(query, limit=CATEGORY_FIND_LIMIT)
        records = self._find(self.config.category_layout, body, token) or []

        categories = []
        for record in records:
            fd = record.get("fieldData") or {}
            name = _first_present(fd, f.name, "category_name")
            if name is None:
                logger.warning(f"Skipping category {record.get('recordId')}: missing name")
                continue
            categories.append(Category(
                id=str(record.get("recordId", "")),
                name=name,
                icon=_first_present(fd, f.icon, "icon"),
                color=_first_present(fd, f.color, "color"),
                user_id=user_id,
            ))
        logger.info(f"Fetched {len(categories)} categories for user {user_id}")
        return categories

    def create_category(self, user_id: str, name: str, icon: Optional[str] = None,
                        color: Optional[str] = None) -> str:
        f = self.config.category_fields
        field_data = {f.user_id: user_id, f.name: name, f.is_active: "1"}
        if icon:
            field_data[f.icon] = icon
        if color:
            field_data[f.color] = color
        record_id = self.with_session(
            lambda token: self._create_record(self.config.category_layout, field_data, token))
        logger.info(f"Category created: {record_id}")
        return record_id

    def update_category(self, record_id: str, name: str, icon: Optional[str] = None,
                        color: Optional[str] = None) -> None:
        f = self.config.category_fields
        field_data = {f.name: name}
        if icon is not None:
            field_data[f.icon] = icon
        if color is not None:
            field_data[f.color] = color
        self.with_session(
            lambda token: self._patch_record(self.config.category_layout, record_id, field_data, token))

    def delete_category(self, record_id: str) -> None:
        self.with_session(lambda token: self._delete_record(self.config.category_layout, record_id, token))

    # ---------------- Expenses ----------------
    def _expense_field_data(self, date_value=None, amount=None, category_id=None,
                            payment_method=None, description=None, type=None,
                            notes=None) -> Dict[str, Any]:
        f = self.config.expense_fields
        field_data: Dict[str, Any] = {}
        if date_value is not None:
            field_data[f.date] = format_filemaker_date(date_value)
        if amount is not None:
            amount = Decimal(str(amount))
            if amount < 0:
                raise ValueError("amount must not be negative")
            field_data[f.amount] = float(amount)
        if category_id is not None:
            field_data[f.category_id] = category_id
        if payment_method is not None:
            field_data[f.payment_method] = payment_method
        if description is not None:
            field_data[f.description] = description
        if type is not None:
            field_data[f.type] = (type if isinstance(type, ExpenseType) else ExpenseType.parse(type)).value
        if notes is not None:
            field_data[f.notes] = notes
        return field_data

    def create_expense(self, user_id: str, date: date, amount, category_id: str,
                       payment_method: str, description: str,
                       type=ExpenseType.EXPENSE, notes: Optional[str] = None) -> str:
        field_data = {self.config.expense_fields.user_id: user_id}
        field_data.update(self._expense_field_data(
            date, amount, category_id, payment_method, description, type, notes))
        record_id = self.with_session(
            lambda token: self._create_record(self.config.expense_layout, field_data, token))
        logger.info(f"Expense record created: {record_id}")
        return record_id

    def update_expense(self, record_id: str, date: Optional[date] = None, amount=None,
                       category_id: Optional[str] = None, payment_method: Optional[str] = None,
                       description: Optional[str] = None, type=None,
                       notes: Optional[str] = None) -> None:
        field_data = self._expense_field_data(
            date, amount, category_id, payment_method, description, type, notes)
        if not field_data:
            raise ValueError("update_expense needs at least one field")
        self.with_session(
            lambda token: self._patch_record(self.config.expense_layout, record_id, field_data, token))

    def delete_expense(self, record_id: str) -> None:
        self.with_session(lambda token: self._delete_record(self.config.expense_layout, record_id, token))
        logger.info(f"Expense deleted: {record_id}")

    def fetch_expenses(self, user_id: str) -> List[Expense]:
        return self.with_session(lambda token: self._perform_fetch_expenses(user_id, token))

    def _perform_fetch_expenses(self, user_id, token) -> List[Expense]:
        f = self.config.expense_fields
        body = self.builder.create_find_query_with_fields({f.user_id: f"=={user_id}"}, limit=EXPENSE_FIND_LIMIT)
        records = self._find(self.config.expense_layout, body, token) or []
        expenses = [self._decode_expense(record) for record in records]
        defaulted = sum(1 for e in expenses if e.date_was_defaulted)
        if defaulted:
            logger.warning(f"{defaulted} expense(s) had no readable date and were dated today")
        logger.info(f"Fetched {len(expenses)} expenses for user {user_id}")
        return expenses

    def _decode_expense(self, record: dict) -> Expense:
        f = self.config.expense_fields
        fd = record.get("fieldData") or {}
        record_id = str(record.get("recordId", ""))
        when, defaulted = parse_record_date(fd.get(f.date), record_id)
        return Expense(
            id=record_id,
            title=_clean(fd.get(f.description)) or "",
            amount=_to_decimal(fd.get(f.amount), record_id),
            category_id=_clean(fd.get(f.category_id)) or "",
            date=when,
            type=ExpenseType.parse(fd.get(f.type)),
            payment_method=_clean(fd.get(f.payment_method)),
            notes=_clean(fd.get(f.notes)),
            creation_timestamp=parse_timestamp(fd.get(f.creation_timestamp)),
            date_was_defaulted=defaulted,
        )
