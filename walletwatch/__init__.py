# walletwatch/__init__.py
from .client import FileMakerClient
from .config import FileMakerConfig
from .errors import (
    ApiError, AuthenticationFailed, CapacityExceeded, ConfigurationError,
    EmailAlreadyExists, EncodingError, FileMakerError, HttpError,
    InvalidCredentials, InvalidResponse, InvalidURL, NetworkError, UserNotFound,
)
from .models import Category, Expense, ExpenseLimit, ExpenseType, User
from .session_store import SessionStore

__version__ = "0.1.0"
