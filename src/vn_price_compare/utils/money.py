from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def parse_price(value: str) -> Decimal:
    """
    Converte uma string de preço como "10,500" ou "10500.00" para Decimal.
    Lança ValueError se não conseguir interpretar.
    """
    cleaned = (
        value.strip().replace(",", "").replace(" ", "")  # remove separadores de milhar
    )

    if cleaned in {"", "-", "—", "N/A"}:
        raise ValueError(f"Empty/invalid price: {value!r}")

    try:
        return Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid price format: {value!r}") from exc


def to_decimal(value: Decimal | int | float | str | None) -> Decimal | None:
    """Coerces a price of any upstream shape; ``None`` when it cannot be read."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return parse_price(str(value))
    except ValueError:
        return None


def quantize(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def pct_change(
    start: Decimal | int | float | str | None,
    end: Decimal | int | float | str | None,
) -> Decimal:
    """
    Variação percentual entre dois preços, arredondada para 2 casas.
    Sem base (início zero/ausente ou fim ausente) devolve 0.
    """
    start_value = to_decimal(start)
    end_value = to_decimal(end)
    if start_value is None or end_value is None or start_value == 0:
        return ZERO
    return quantize((end_value - start_value) / start_value * 100)
