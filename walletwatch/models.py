# walletwatch/models.py
"""Domain records decoded from the Data API.

Record ids are the server's opaque ``recordId`` strings. Optional user
preferences stay ``None`` until the user sets them.
"""
import zlib
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

THEMES = ("Light Mode", "Dark Mode")
LIMIT_TYPES = ("percentage", "amount")
LIMIT_PERIODS = ("week", "month", "year")


class ExpenseLimit(BaseModel):
    type: Literal["percentage", "amount"]
    value: float = Field(..., ge=0)
    period: Literal["week", "month", "year"]


class User(BaseModel):
    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: str
    currency: Optional[str] = None
    theme: Optional[Literal["Light Mode", "Dark Mode"]] = None
    expense_limit: Optional[ExpenseLimit] = None
    pay_day: Optional[int] = Field(None, ge=1, le=28, description="None means calendar month")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def with_changes(self, **fields) -> "User":
        return self.model_copy(update=fields)


# ---------------- Category ----------------
ALLOWED_ICONS = {
    "fork.knife", "car.fill", "bag.fill", "doc.text.fill", "tv.fill",
    "heart.fill", "book.fill", "dollarsign.circle.fill", "ellipsis.circle.fill",
    "tag.fill", "house.fill", "cart.fill", "creditcard.fill", "gift.fill",
    "airplane", "bus.fill", "bicycle", "fuelpump.fill", "figure.walk",
    "cup.and.saucer.fill", "wineglass.fill", "creditcard", "banknote.fill",
    "chart.pie.fill", "briefcase.fill", "graduationcap.fill", "stethoscope",
    "pills.fill", "sportscourt.fill", "gamecontroller.fill", "film.fill",
    "music.note", "paintbrush.fill", "lightbulb.fill", "pawprint.fill",
    "sparkles", "person.2.fill",
}

NAME_TO_ICON: List[Tuple[List[str], str]] = [
    (["food", "groceries", "eating", "restaurant", "dining", "meal", "lunch", "dinner", "breakfast", "cafe", "coffee"], "fork.knife"),
    (["drink", "beverage", "bar", "wine", "beer", "tea"], "cup.and.saucer.fill"),
    (["transport", "car", "travel", "uber", "taxi", "fuel", "gas", "petrol", "commute"], "car.fill"),
    (["bus", "transit"], "bus.fill"),
    (["flight", "airline", "plane"], "airplane"),
    (["shopping", "store", "retail", "market", "mall"], "bag.fill"),
    (["bills", "utilities", "electric", "water", "rent", "mortgage", "insurance"], "doc.text.fill"),
    (["entertainment", "movie", "cinema", "netflix", "streaming", "game"], "tv.fill"),
    (["health", "medical", "pharmacy", "doctor", "fitness", "gym"], "heart.fill"),
    (["education", "school", "course", "training", "book"], "book.fill"),
    (["salary", "income", "pay", "wage", "freelance", "work"], "dollarsign.circle.fill"),
    (["gift", "donation", "charity"], "gift.fill"),
    (["home", "housing", "house"], "house.fill"),
    (["subscription", "membership"], "creditcard.fill"),
    (["pet", "animal", "vet"], "pawprint.fill"),
    (["personal", "care", "beauty"], "sparkles"),
    (["kids", "child", "baby"], "person.2.fill"),
    (["tax"], "doc.text.fill"),
]

NAME_TO_COLOR: List[Tuple[List[str], str]] = [
    (["food", "groceries", "eating", "restaurant", "dining", "meal", "lunch", "dinner", "breakfast"], "orange"),
    (["drink", "beverage", "bar", "wine", "beer", "coffee", "tea", "cafe"], "brown"),
    (["transport", "car", "travel", "uber", "taxi", "fuel", "gas", "petrol", "commute"], "blue"),
    (["bus", "transit"], "indigo"),
    (["flight", "airline", "plane"], "cyan"),
    (["shopping", "store", "retail", "market", "mall"], "pink"),
    (["bills", "utilities", "electric", "water", "rent", "mortgage", "insurance"], "purple"),
    (["entertainment", "movie", "cinema", "netflix", "streaming", "game"], "red"),
    (["health", "medical", "pharmacy", "doctor", "fitness", "gym"], "green"),
    (["education", "school", "course", "training", "book"], "teal"),
    (["salary", "income", "pay", "wage", "freelance", "work"], "mint"),
    (["gift", "donation", "charity"], "yellow"),
    (["home", "housing", "house"], "indigo"),
    (["other", "misc", "miscellaneous", "general", "uncategorized"], "gray"),
]

COLOR_PALETTE = ["blue", "green", "orange", "purple", "pink", "red",
                 "teal", "indigo", "cyan", "mint", "yellow", "brown"]

DEFAULT_ICON = "tag.fill"


def icon_for_name(name: str) -> str:
    lowered = name.lower()
    for keywords, icon in NAME_TO_ICON:
        if any(k in lowered for k in keywords):
            return icon
    return DEFAULT_ICON


def color_for_name(name: str) -> str:
    lowered = name.lower()
    for keywords, color in NAME_TO_COLOR:
        if any(k in lowered for k in keywords):
            return color
    # crc32 keeps the pick stable across processes
    return COLOR_PALETTE[zlib.crc32(lowered.encode("utf-8")) % len(COLOR_PALETTE)]


class Category(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    user_id: str

    @property
    def display_icon(self) -> str:
        raw = (self.icon or "").strip().lower()
        if raw in ALLOWED_ICONS:
            return raw
        return icon_for_name(self.name)

    @property
    def display_color(self) -> str:
        raw = (self.color or "").strip().lower()
        return raw or color_for_name(self.name)


# ---------------- Expense ----------------
class ExpenseType(str, Enum):
    INCOME = "Income"
    EXPENSE = "Expense"

    @classmethod
    def parse(cls, raw) -> "ExpenseType":
        """Unknown or missing tags count as expenses"""
        if raw is not None and str(raw).strip().lower() == "income":
            return cls.INCOME
        return cls.EXPENSE


class Expense(BaseModel):
    id: str
    title: str = ""
    amount: Decimal = Field(Decimal("0"), ge=0)
    category_id: str = ""
    date: date
    type: ExpenseType = ExpenseType.EXPENSE
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    creation_timestamp: Optional[datetime] = None
    date_was_defaulted: bool = False

    @property
    def sort_date_for_recency(self) -> datetime:
        return self.creation_timestamp or datetime.combine(self.date, time.min)
