"""Convert holdings table cell text into exact decimals."""

from decimal import Decimal, InvalidOperation

from .vgerrors import ParseError

# Glyphs the portal decorates numbers with
_STRIP = str.maketrans("", "", "£%,")
_UNICODE_MINUS = "−"


def clean_value(text: str) -> str:
    """Return ``text`` trimmed, without currency/percent/grouping glyphs."""
    return text.strip().translate(_STRIP).replace(_UNICODE_MINUS, "-")


def parse_value(text: str | None) -> Decimal:
    """
    Parse a money cell such as ``"£1,234.50"`` or ``"−2.3%"``.

    The result is a :class:`~decimal.Decimal` carrying exactly the digits
    shown on the page. Anything that is not a finite decimal literal once
    cleaned raises :class:`ParseError`; nothing is ever coerced to zero.
    """
    if text is None:
        raise ParseError(text)
    cleaned = clean_value(text)
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ParseError(text) from None
    if not value.is_finite():
        raise ParseError(text)
    return value
