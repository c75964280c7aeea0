from datetime import date, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from walletwatch.models import (
    COLOR_PALETTE, Category, Expense, ExpenseLimit, ExpenseType, User,
    color_for_name, icon_for_name,
)


def test_icon_for_name():
    assert icon_for_name("Groceries") == "fork.knife"
    assert icon_for_name("Monthly Rent") == "doc.text.fill"
    assert icon_for_name("Zzz") == "tag.fill"


def test_color_for_name_is_stable():
    assert color_for_name("Groceries") == "orange"
    picked = color_for_name("Zzz")
    assert picked in COLOR_PALETTE
    assert color_for_name("ZZZ") == picked


def test_category_display_values():
    cat = Category(id="1", name="Fuel", icon=" CAR.FILL ", color="", user_id="5")
    assert cat.display_icon == "car.fill"
    assert cat.display_color == "blue"

    odd = Category(id="2", name="Fuel", icon="rocket", color="Teal", user_id="5")
    assert odd.display_icon == "car.fill"
    assert odd.display_color == "teal"


def test_expense_type_parse():
    assert ExpenseType.parse("income") is ExpenseType.INCOME
    assert ExpenseType.parse(" Income ") is ExpenseType.INCOME
    assert ExpenseType.parse("Expense") is ExpenseType.EXPENSE
    assert ExpenseType.parse("refund") is ExpenseType.EXPENSE
    assert ExpenseType.parse(None) is ExpenseType.EXPENSE


def test_sort_date_for_recency():
    plain = Expense(id="1", date=date(2026, 1, 5))
    stamped = Expense(id="2", date=date(2026, 1, 5), creation_timestamp=datetime(2026, 1, 6, 12))

    assert plain.sort_date_for_recency == datetime(2026, 1, 5)
    assert stamped.sort_date_for_recency == datetime(2026, 1, 6, 12)


def test_expense_rejects_negative_amount():
    with pytest.raises(ValidationError):
        Expense(id="1", date=date(2026, 1, 5), amount=Decimal("-1"))


@pytest.mark.parametrize("pay_day", [0, 29])
def test_user_pay_day_range(pay_day):
    with pytest.raises(ValidationError):
        User(user_id="1", email="a@x.com", pay_day=pay_day)


def test_user_with_changes_keeps_other_fields():
    user = User(user_id="1", first_name="Ama", email="a@x.com", currency="USD")
    limit = ExpenseLimit(type="amount", value=300, period="month")

    changed = user.with_changes(theme="Dark Mode", expense_limit=limit)

    assert changed.theme == "Dark Mode"
    assert changed.expense_limit == limit
    assert changed.currency == "USD"
    assert user.theme is None
    assert changed.full_name == "Ama"
