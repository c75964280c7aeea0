# walletwatch/reports.py
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .models import Category, Expense, User

logger = logging.getLogger("walletwatch.reports")

PERIODS = ("week", "month", "year", "pay")
PERIOD_LABELS = {"week": "this week", "month": "this month", "year": "this year"}
CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "GHS": "GH₵", "NGN": "₦", "INR": "₹", "JPY": "¥"}

COLUMNS = ['id', 'title', 'amount', 'category_id', 'date', 'type', 'payment_method', 'recency']


def expenses_frame(expenses: List[Expense]) -> pd.DataFrame:
    """Flatten expenses into a DataFrame (amount as float, type as 'income'/'expense')"""
    if not expenses:
        return pd.DataFrame(columns=COLUMNS)
    df = pd.DataFrame([{
        'id': e.id,
        'title': e.title,
        'amount': float(e.amount),
        'category_id': e.category_id.strip(),
        'date': pd.Timestamp(e.date),
        'type': e.type.value.lower(),
        'payment_method': e.payment_method,
        'recency': pd.Timestamp(e.sort_date_for_recency),
    } for e in expenses])
    df['amount'] = pd.to_numeric(df['amount'], errors='coerce').fillna(0.0)
    return df


# ---------------- Periods ----------------
def pay_period_range(pay_day: Optional[int], today: Optional[date] = None) -> Tuple[date, date]:
    """Pay cycle containing ``today``; calendar month when no pay day is set"""
    today = today or date.today()
    if pay_day is None:
        return period_range("month", today=today)
    start = pd.Timestamp(today.year, today.month, pay_day)
    if today.day < pay_day:
        start = start - pd.DateOffset(months=1)
    end = start + pd.DateOffset(months=1) - pd.Timedelta(days=1)
    return start.date(), end.date()


def period_range(period: str, today: Optional[date] = None, year: Optional[int] = None,
                 month: Optional[int] = None, pay_day: Optional[int] = None) -> Tuple[date, date]:
    """Inclusive (start, end) dates for a period.

    week is the last seven days ending today; month and year default to the
    ones containing today; pay is the pay cycle for ``pay_day``.
    """
    today = today or date.today()
    if period == "week":
        return today - timedelta(days=6), today
    if period == "month":
        start = pd.Timestamp(year or today.year, month or today.month, 1)
        return start.date(), (start + pd.offsets.MonthEnd(0)).date()
    if period == "year":
        y = year or today.year
        return date(y, 1, 1), date(y, 12, 31)
    if period == "pay":
        return pay_period_range(pay_day, today)
    raise ValueError(f"Unknown period {period!r}, expected one of {PERIODS}")


def filter_period(df: pd.DataFrame, start: date, end: date) -> pd.DataFrame:
    if df.empty:
        return df
    mask = (df['date'] >= pd.Timestamp(start)) & (df['date'] <= pd.Timestamp(end))
    return df[mask]


# ---------------- Summaries ----------------
def summarize(expenses: List[Expense], start: date, end: date) -> Dict[str, float]:
    """Income, expenses and balance for the period, plus the all-time balance"""
    df = expenses_frame(expenses)
    period_df = filter_period(df, start, end)

    def total(frame, kind):
        if frame.empty:
            return 0.0
        return float(frame[frame['type'] == kind]['amount'].sum())

    income = total(period_df, 'income')
    spent = total(period_df, 'expense')
    return {
        "total_income": round(income, 2),
        "total_expense": round(spent, 2),
        "balance": round(income - spent, 2),
        "cumulative_balance": round(total(df, 'income') - total(df, 'expense'), 2),
        "count": int(len(period_df)),
    }


def category_breakdown(expenses: List[Expense], categories: List[Category],
                       start: date, end: date) -> List[Dict]:
    """Expense totals per category, largest first. Unresolved category ids are left out."""
    df = filter_period(expenses_frame(expenses), start, end)
    if df.empty:
        return []
    df = df[df['type'] == 'expense']
    by_id = {c.id.strip(): c for c in categories}
    resolved = df[df['category_id'].isin(list(by_id))]
    if len(resolved) < len(df):
        logger.debug(f"{len(df) - len(resolved)} expense(s) reference unknown categories")
    df = resolved
    if df.empty:
        return []
    totals = df.groupby('category_id')['amount'].sum().sort_values(ascending=False)
    grand_total = totals.sum()
    return [{
        "category": by_id[cid],
        "total": round(float(amount), 2),
        "percent": round(float(amount) / grand_total * 100, 2) if grand_total else 0.0,
    } for cid, amount in totals.items()]


def recent_transactions(expenses: List[Expense], start: Optional[date] = None,
                        end: Optional[date] = None, limit: Optional[int] = 5) -> List[Expense]:
    """Newest first by creation timestamp, falling back to the transaction date"""
    selected = [e for e in expenses
                if (start is None or e.date >= start) and (end is None or e.date <= end)]
    selected.sort(key=lambda e: e.sort_date_for_recency, reverse=True)
    return selected if limit is None else selected[:limit]


# ---------------- Expense limit ----------------
def format_currency(amount: float, currency_code: Optional[str] = None) -> str:
    code = (currency_code or "USD").upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{code} {amount:,.2f}"


def is_over_expense_limit(user: User, period: str, total_income: float, total_expense: float) -> bool:
    limit = user.expense_limit
    if limit is None or limit.value <= 0 or limit.period != period:
        return False
    if limit.type == "percentage":
        if total_income <= 0:
            return False
        return total_expense / total_income * 100 >= limit.value
    return total_expense >= limit.value


def expense_limit_message(user: User, total_income: float, total_expense: float) -> str:
    limit = user.expense_limit
    if limit is None:
        return ""
    label = PERIOD_LABELS[limit.period]
    if limit.type == "percentage":
        actual = total_expense / total_income * 100 if total_income > 0 else 0
        return (f"You've spent {actual:.0f}% of your income {label}, "
                f"over your {int(limit.value)}% limit.")
    return f"You've exceeded your {format_currency(limit.value, user.currency)} limit {label}."

