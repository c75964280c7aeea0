# walletwatch/config.py
import os

PLACEHOLDER_DATABASE = "YOUR_DATABASE_NAME"
API_VERSION = "vLatest"

DEFAULT_TIMEOUT = 30.0
CLOSE_SESSION_TIMEOUT = 5.0


def _env_flag(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class UserFields:
    """Field names on the login layout"""

    def __init__(self, email="EmailAddress", password="account_password",
                 first_name="first_name", last_name="last_name",
                 currency="Currency", theme="Theme",
                 expense_limit_type="ExpenseLimitType",
                 expense_limit_value="ExpenseLimitValue",
                 expense_limit_period="ExpenseLimitPeriod",
                 pay_day="PayDay"):
        self.email = email
        self.password = password
        self.first_name = first_name
        self.last_name = last_name
        self.currency = currency
        self.theme = theme
        self.expense_limit_type = expense_limit_type
        self.expense_limit_value = expense_limit_value
        self.expense_limit_period = expense_limit_period
        self.pay_day = pay_day


class CategoryFields:
    """Field names on the category layout"""

    def __init__(self, user_id="UserID", name="CategoryName", icon="Icon",
                 color="Color", is_active="IsActive"):
        self.user_id = user_id
        self.name = name
        self.icon = icon
        self.color = color
        self.is_active = is_active


class ExpenseFields:
    """Field names on the expense layout"""

    def __init__(self, user_id="UserID", date="Date", amount="Amount",
                 category_id="CategoryID", payment_method="PaymentMethod",
                 description="Description", type="Type", notes="Notes",
                 creation_timestamp="CreationTimestamp"):
        self.user_id = user_id
        self.date = date
        self.amount = amount
        self.category_id = category_id
        self.payment_method = payment_method
        self.description = description
        self.type = type
        self.notes = notes
        self.creation_timestamp = creation_timestamp


class FileMakerConfig:
    """Connection settings, layout names and field mappings for one database.

    Built explicitly and handed to the client. ``from_env`` fills it from the
    process environment for deployments that configure through variables.
    """

    def __init__(self, server_url, database, username, password,
                 login_layout="test_table_login", category_layout="Category",
                 expense_layout="Expenses", filter_active_categories=True,
                 timeout=DEFAULT_TIMEOUT, user_fields=None,
                 category_fields=None, expense_fields=None):
        self.server_url = server_url.rstrip("/")
        self.database = database
        self.username = username
        self.password = password
        self.login_layout = login_layout
        self.category_layout = category_layout
        self.expense_layout = expense_layout
        self.filter_active_categories = filter_active_categories
        self.timeout = timeout
        self.user_fields = user_fields or UserFields()
        self.category_fields = category_fields or CategoryFields()
        self.expense_fields = expense_fields or ExpenseFields()

    @classmethod
    def from_env(cls):
        return cls(
            server_url=os.environ.get("FILEMAKER_SERVER_URL", "http://localhost:5050"),
            database=os.environ.get("FILEMAKER_DATABASE", PLACEHOLDER_DATABASE),
            username=os.environ.get("FILEMAKER_USERNAME", ""),
            password=os.environ.get("FILEMAKER_PASSWORD", ""),
            login_layout=os.environ.get("FILEMAKER_LOGIN_LAYOUT", "test_table_login"),
            category_layout=os.environ.get("FILEMAKER_CATEGORY_LAYOUT", "Category"),
            expense_layout=os.environ.get("FILEMAKER_EXPENSE_LAYOUT", "Expenses"),
            filter_active_categories=_env_flag("FILEMAKER_FILTER_ACTIVE_CATEGORIES", True),
            timeout=float(os.environ.get("FILEMAKER_TIMEOUT", DEFAULT_TIMEOUT)),
        )

    @property
    def is_configured(self):
        return bool(self.database) and self.database != PLACEHOLDER_DATABASE

    def __repr__(self):
        return (f"FileMakerConfig(server_url={self.server_url!r}, "
                f"database={self.database!r}, username={self.username!r})")
