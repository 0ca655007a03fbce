import datetime
import re
from typing import Optional, Union

from .enums import PropertyCurrency
from .schemas import PropertyPrice

_NON_DIGITS = re.compile(r"\D")


def _group_thousands(amount: float) -> str:
    if float(amount).is_integer():
        return f"{int(amount):,}"
    return f"{amount:,.2f}".rstrip("0").rstrip(".")


def format_price(price: PropertyPrice) -> str:
    """`₦200,000/night`"""
    return f"{price.currency.value}{_group_thousands(price.amount)}/{price.duration.value}"


def format_currency(amount: float, currency: Union[PropertyCurrency, str] = PropertyCurrency.NGN) -> str:
    symbol = currency.value if isinstance(currency, PropertyCurrency) else currency
    return f"{symbol}{round(amount or 0):,}"


def format_phone(phone: str) -> str:
    """Groups Nigerian and Ghanaian numbers as `+234 8012 345 678`; others are returned as given."""
    cleaned = _NON_DIGITS.sub("", phone or "")
    for code in ("234", "233"):
        if cleaned.startswith(code):
            digits = cleaned[3:]
            return f"+{code} {digits[:4]} {digits[4:7]} {digits[7:]}"
    return phone


def format_date(value: Optional[Union[datetime.date, str]]) -> str:
    """`Mar 4, 2025`"""
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def nights_between(check_in: datetime.date, check_out: datetime.date) -> int:
    return max((check_out - check_in).days, 0)
