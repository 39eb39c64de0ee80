"""
Display helpers for currency and percentage values (en-US grouping,
currency-code driven symbols).
"""

from __future__ import annotations

from .numeric import round_half_up

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "CA$",
    "AUD": "A$",
}
# Currencies without a narrow en-US symbol are shown as "CODE 1,234".
SUPPORTED_CURRENCIES = ("EUR", "USD", "GBP", "JPY", "CAD", "AUD", "CHF", "SEK", "NOK", "DKK")


def currency_prefix(currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol is not None:
        return symbol
    return f"{currency} "


def format_number(value: float, max_decimals: int = 3) -> str:
    """Thousands-grouped number with up to ``max_decimals`` fraction digits."""
    text = f"{round_half_up(abs(value), max_decimals):,.{max_decimals}f}"
    if max_decimals:
        text = text.rstrip("0").rstrip(".")
    sign = "-" if value < 0 and text not in ("0", "") else ""
    return f"{sign}{text}"


def format_currency(amount: float, currency: str = "EUR", compact: bool = False) -> str:
    """
    Format ``amount`` as whole currency units, e.g. ``-€1,235``.

    With ``compact=True`` large amounts are abbreviated: ``€1.25M``, ``€950K``.
    """
    sign = "-" if amount < 0 else ""
    magnitude = abs(amount)
    prefix = currency_prefix(currency)

    if compact:
        if magnitude >= 1_000_000_000:
            return f"{sign}{prefix}{magnitude / 1_000_000_000:.2f}B"
        if magnitude >= 1_000_000:
            return f"{sign}{prefix}{magnitude / 1_000_000:.2f}M"
        if magnitude >= 1_000:
            return f"{sign}{prefix}{round_half_up(magnitude / 1_000):.0f}K"

    rounded = round_half_up(magnitude)
    if rounded == 0:
        sign = ""
    return f"{sign}{prefix}{rounded:,.0f}"


def format_percent(value: float, decimals: int = 1) -> str:
    """A fraction as a percentage: ``0.125`` -> ``"12.5%"``."""
    return f"{value * 100:.{decimals}f}%"
