"""Formatting utilities for currency and text display.

Amounts are stored and aggregated at full precision; rounding happens only
here, at the presentation boundary.
"""

from __future__ import annotations

from typing import Optional, Union

from .config import LOCALE


def format_currency(amount: Union[float, int], locale: Optional[str] = None, include_sign: bool = True) -> str:
    """Format a currency amount for display.

    Args:
        amount: The amount to format
        locale: ``"en"`` (default) or ``"pt-BR"``
        include_sign: Whether to include the currency symbol

    Returns:
        Formatted currency string

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(1234.56, locale="pt-BR")
        'R$ 1.234,56'
        >>> format_currency(-5, include_sign=False)
        '-5.00'
    """
    locale = locale or LOCALE
    formatted = f"{amount:,.2f}"
    if locale == "pt-BR":
        formatted = formatted.replace(",", "_").replace(".", ",").replace("_", ".")
        return f"R$ {formatted}" if include_sign else formatted
    return f"${formatted}" if include_sign else formatted


def escape_dollar_for_markdown(text: str) -> str:
    """Escape dollar signs so Streamlit markdown does not treat them as LaTeX.

    Example:
        >>> escape_dollar_for_markdown("$1,234.56")
        '\\\\$1,234.56'
    """
    return text.replace("$", "\\$")


def format_percent(value: float) -> str:
    """
    Example:
        >>> format_percent(12.345)
        '12.3%'
    """
    return f"{value:.1f}%"
