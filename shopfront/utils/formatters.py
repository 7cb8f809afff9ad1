from decimal import ROUND_HALF_UP, Decimal

from shopfront.config import settings


def money(v, decimals: int | None = None, currency: str | None = None) -> str:
    # rounding happens here and nowhere upstream
    places = settings.decimals if decimals is None else decimals
    q = Decimal(1).scaleb(-places)
    amount = Decimal(str(v)).quantize(q, rounding=ROUND_HALF_UP)
    cur = settings.currency if currency is None else currency
    return f"{amount} {cur}".rstrip()
