"""
Stateless display helpers: category icon/color lookup and currency formatting.
The currency is always passed in; there is no process-wide "selected currency".
"""
from typing import Dict, List, Tuple

DEFAULT_CATEGORIES: List[str] = ["Food", "Transport", "Shopping", "Bills", "Entertainment"]

CATEGORY_STYLES: Dict[str, Tuple[str, str]] = {
    "Food": ("fork-knife", "#FF8E8E"),
    "Transport": ("car", "#60A5FA"),
    "Shopping": ("cart", "#8B5CF6"),
    "Bills": ("doc", "#F59E0B"),
    "Entertainment": ("tv", "#10B981"),
}
DEFAULT_STYLE: Tuple[str, str] = ("card", "#6B7280")

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
}


def icon_and_color(category: str) -> Tuple[str, str]:
    return CATEGORY_STYLES.get(category, DEFAULT_STYLE)


def format_amount(amount: float, currency: str = "USD") -> str:
    """
    Format an amount for display, e.g. ``$1,234.50`` or ``-€12.00``.
    Unknown currency codes fall back to ``CODE 1,234.50``.
    """
    sign = "-" if amount < 0 else ""
    digits = f"{abs(amount):,.0f}" if currency == "JPY" else f"{abs(amount):,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{sign}{currency.upper()} {digits}"
    return f"{sign}{symbol}{digits}"
