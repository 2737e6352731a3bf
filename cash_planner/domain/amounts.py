"""Fixed-point money arithmetic: cents, ppm rates and the HT/TVA/TTC triangle"""

from typing import Optional, Tuple

from cash_planner.domain.exceptions import ValidationError

# 1_000_000 ppm = 100%
PPM_SCALE = 1_000_000


def div_trunc(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero (Python's // floors)"""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def apply_rate_ppm(amount_cents: int, rate_ppm: int) -> int:
    """
    amount * rate / 1_000_000, truncated toward zero.

    Example:
        apply_rate_ppm(500000, 220000) -> 110000  (22% of 5000.00)
    """
    return div_trunc(amount_cents * rate_ppm, PPM_SCALE)


def vat_from_ht(amount_ht_cents: int, vat_rate_ppm: int) -> int:
    """VAT amount owed on a pre-tax amount"""
    return apply_rate_ppm(amount_ht_cents, vat_rate_ppm)


def ht_from_ttc(amount_ttc_cents: int, vat_rate_ppm: int) -> int:
    """Inverse gross-up: pre-tax share of a tax-inclusive amount"""
    return div_trunc(amount_ttc_cents * PPM_SCALE, PPM_SCALE + vat_rate_ppm)


def resolve_amounts(
    amount_ht_cents: Optional[int],
    amount_tva_cents: Optional[int],
    amount_ttc_cents: Optional[int],
    default_vat_rate_ppm: int,
) -> Tuple[int, int, int]:
    """
    Complete the HT/TVA/TTC triangle from whatever amounts were supplied.

    Rules:
    - All three given: must satisfy HT + TVA == TTC
    - Two given: the third is derived (TTC may not be below HT or TVA)
    - HT alone: TVA derived from the default rate
    - Anything else is rejected

    Raises:
        ValidationError: inconsistent or insufficient amounts

    Returns: (ht, tva, ttc)
    """
    ht, tva, ttc = amount_ht_cents, amount_tva_cents, amount_ttc_cents

    if ht is not None and tva is not None and ttc is not None:
        if ht + tva != ttc:
            raise ValidationError("TTC doit être égal à HT + TVA")
        return ht, tva, ttc

    if ht is not None and tva is not None:
        return ht, tva, ht + tva

    if ht is not None and ttc is not None:
        if ttc < ht:
            raise ValidationError("TTC < HT")
        return ht, ttc - ht, ttc

    if tva is not None and ttc is not None:
        if ttc < tva:
            raise ValidationError("TTC < TVA")
        return ttc - tva, tva, ttc

    if ht is not None:
        tva = vat_from_ht(ht, default_vat_rate_ppm)
        return ht, tva, ht + tva

    raise ValidationError("Fournir au moins HT, ou deux montants parmi HT/TVA/TTC")
