from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def compute_commission(amount, rate) -> tuple[Decimal, Decimal]:
    """Return ``(admin_commission, seller_amount)`` for a sale.

    The commission is rounded half-up to cents and the seller amount is the
    exact remainder, so the two always add back up to ``amount``.
    """
    amount = Decimal(str(amount))
    rate = Decimal(str(rate))
    if amount < 0:
        raise ValueError("amount must not be negative")
    if not (Decimal("0") <= rate <= Decimal("1")):
        raise ValueError("commission rate must be between 0 and 1")
    commission = (amount * rate).quantize(CENT, rounding=ROUND_HALF_UP)
    return commission, amount - commission


def commission_drift(amount, rate, stored_commission) -> Decimal:
    expected, _ = compute_commission(amount, rate)
    return abs(Decimal(str(stored_commission or 0)) - expected)
