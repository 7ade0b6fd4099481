"""
WAD fixed-point helpers (1.0 == 10**18) and pro-rata fee splitting.
"""

from decimal import Decimal
from typing import List, Sequence, Tuple

from .errors import InvalidBeneficiaries
from .types import BeneficiaryData

WAD = 10 ** 18


def mul_wad_down(x: int, y: int) -> int:
    """x * y / WAD, rounded toward zero for non-negative inputs"""
    return x * y // WAD


def to_wad(fraction) -> int:
    """Convert a decimal fraction (0.05, "0.05", Decimal) to WAD without float drift"""
    return int(Decimal(str(fraction)) * WAD)


def fractions_to_wad(fractions: Sequence[float]) -> List[int]:
    """
    Convert fractions that sum to 1.0 into WAD shares summing to exactly WAD.

    The last entry absorbs the conversion residue.
    """
    shares = [to_wad(f) for f in fractions]
    if shares:
        shares[-1] += WAD - sum(shares)
    return shares


def validate_beneficiaries(beneficiaries: Sequence[BeneficiaryData]) -> None:
    """An empty list is valid; otherwise shares lie in (0, WAD], recipients are unique and shares sum to WAD"""
    if not beneficiaries:
        return

    seen = set()
    total = 0
    for entry in beneficiaries:
        if entry.shares <= 0 or entry.shares > WAD:
            raise InvalidBeneficiaries(f"Share {entry.shares} for {entry.beneficiary} outside (0, WAD]")
        if entry.beneficiary in seen:
            raise InvalidBeneficiaries(f"Duplicate beneficiary {entry.beneficiary}")
        seen.add(entry.beneficiary)
        total += entry.shares

    if total != WAD:
        raise InvalidBeneficiaries(f"Beneficiary shares sum to {total}, expected {WAD}")


def split_pro_rata(amount: int, beneficiaries: Sequence[BeneficiaryData]) -> Tuple[List[Tuple[str, int]], int]:
    """
    Split `amount` by WAD shares, flooring each payout.

    Returns:
        ([(recipient, payout), ...] in list order, undistributed remainder)
    """
    payouts = [(b.beneficiary, mul_wad_down(amount, b.shares)) for b in beneficiaries]
    remainder = amount - sum(p for _, p in payouts)
    return payouts, remainder
