# walletwatch/user_session.py
import json
import logging
import os
import threading
from typing import List, Optional

from pydantic import ValidationError

from .client import FileMakerClient
from .models import Category, ExpenseLimit, User

logger = logging.getLogger("walletwatch.user_session")


class JsonFileStore:
    """Tiny key-value store persisted as one JSON file"""

    def __init__(self, path):
        self.path = path
        self._lock = threading.Lock()

    def _load(self):
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return {}

    def _save(self, data):
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f)

    def get(self, key, default=None):
        with self._lock:
            return self._load().get(key, default)

    def set(self, key, value):
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key):
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._save(data)


class UserSession:
    """Logged-in user and category cache, kept in a local key-value store.

    Profile changes go to the server first and are only applied locally
    once the server accepted them.
    """

    USER_KEY = "currentUser"
    CATEGORIES_KEY = "categories"

    def __init__(self, client: FileMakerClient, store):
        self.client = client
        self.store = store
        self.current_user: Optional[User] = None
        self.categories: List[Category] = []

    @property
    def is_logged_in(self) -> bool:
        return self.current_user is not None

    def restore(self) -> Optional[User]:
        raw = self.store.get(self.USER_KEY)
        if raw is None:
            return None
        try:
            self.current_user = User.model_validate(raw)
            self.categories = [Category.model_validate(c) for c in self.store.get(self.CATEGORIES_KEY) or []]
        except ValidationError as e:
            logger.warning(f"Discarding unreadable saved user: {e}")
            self.store.delete(self.USER_KEY)
            self.store.delete(self.CATEGORIES_KEY)
            self.current_user = None
            self.categories = []
            return None
        logger.info(f"Restored user session for {self.current_user.user_id}")
        return self.current_user

    def login(self, user: User) -> None:
        self.current_user = user
        self.store.set(self.USER_KEY, user.model_dump(mode="json"))
        logger.info(f"User logged in: {user.user_id}")

    def sign_in(self, email: str, password: str) -> User:
        user = self.client.login_user(email, password)
        self.login(user)
        return user

    def logout(self) -> None:
        self.current_user = None
        self.categories = []
        self.store.delete(self.USER_KEY)
        self.store.delete(self.CATEGORIES_KEY)
        self.client.logout()
        logger.info("User logged out")

    def _require_user(self) -> User:
        if self.current_user is None:
            raise RuntimeError("No user is logged in")
        return self.current_user

    def update_user(self, **changes) -> User:
        self.login(self._require_user().with_changes(**changes))
        return self.current_user

    def set_categories(self, categories: List[Category]) -> None:
        self.categories = list(categories)
        self.store.set(self.CATEGORIES_KEY, [c.model_dump(mode="json") for c in self.categories])

    def refresh_categories(self) -> List[Category]:
        user = self._require_user()
        self.set_categories(self.client.fetch_categories(user.user_id))
        return self.categories

    def category_for(self, category_id: str) -> Optional[Category]:
        wanted = (category_id or "").strip()
        if not wanted:
            return None
        return next((c for c in self.categories if c.id.strip() == wanted), None)

    # ---------------- Profile ----------------
    def change_currency(self, currency: str) -> User:
        self.client.update_user_currency(self._require_user().user_id, currency)
        return self.update_user(currency=currency)

    def change_theme(self, theme: str) -> User:
        self.client.update_user_theme(self._require_user().user_id, theme)
        return self.update_user(theme=theme)

    def change_expense_limit(self, limit_type: str, value: float, period: str) -> User:
        user = self._require_user()
        self.client.update_user_expense_limit(user.user_id, limit_type, value, period)
        return self.update_user(expense_limit=ExpenseLimit(type=limit_type, value=value, period=period))

    def change_pay_day(self, pay_day: Optional[int]) -> User:
        self.client.update_user_pay_day(self._require_user().user_id, pay_day)
        return self.update_user(pay_day=pay_day)

    def delete_account(self) -> None:
        self.client.delete_account(self._require_user().user_id)
        self.logout()
