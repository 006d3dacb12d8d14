"""Money helpers - amounts are integer cents, displayed in BRL"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


def format_cents(amount_in_cents: int) -> str:
    """Format cents as pt-BR currency, e.g. 123456 -> "R$ 1.234,56" """
    amount = int(amount_in_cents or 0)
    sign = "-" if amount < 0 else ""
    reais, cents = divmod(abs(amount), 100)
    grouped = f"{reais:,}".replace(",", ".")
    return f"{sign}R$ {grouped},{cents:02d}"


def cents_to_reais(amount_in_cents: int) -> float:
    return round((amount_in_cents or 0) / 100, 2)


def parse_currency_to_cents(value: str) -> int:
    """
    Parse a typed currency value into cents.

    Accepts "R$ 150,00", "150.5" or "1.234,56"; anything unparseable yields 0.
    """
    if value is None:
        return 0
    cleaned = re.sub(r"[^\d,.\-]", "", str(value))
    if "," in cleaned:
        # pt-BR: dots group thousands, comma marks decimals
        cleaned = cleaned.replace(".", "").replace(",", ".")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return 0
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
