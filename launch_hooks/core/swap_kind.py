"""
Swap classification for numeraire fee collection.

Each swap resolves to exactly one SwapKind, which fixes whether the numeraire
amount is known before settlement (specified leg) or only after it.
"""

from enum import Enum

from .types import Currency, PoolKey, SwapParams


class SwapKind(Enum):
    EXACT_IN_NUMERAIRE_FOR_ASSET = "exact_in_numeraire_for_asset"
    EXACT_OUT_ASSET_FOR_NUMERAIRE = "exact_out_asset_for_numeraire"
    EXACT_IN_ASSET_FOR_NUMERAIRE = "exact_in_asset_for_numeraire"
    EXACT_OUT_NUMERAIRE_FOR_ASSET = "exact_out_numeraire_for_asset"

    @property
    def charged_before_swap(self) -> bool:
        """The numeraire leg is the specified amount, so the fee is taken up front"""
        return self in (SwapKind.EXACT_IN_NUMERAIRE_FOR_ASSET, SwapKind.EXACT_OUT_ASSET_FOR_NUMERAIRE)

    @property
    def numeraire_is_input(self) -> bool:
        return self in (SwapKind.EXACT_IN_NUMERAIRE_FOR_ASSET, SwapKind.EXACT_OUT_NUMERAIRE_FOR_ASSET)

    def realized_numeraire(self, numeraire_delta: int) -> int:
        """
        Numeraire amount moved by a settled swap.

        `numeraire_delta` is the caller-side delta: positive when the caller receives
        numeraire, negative when it pays. A non-positive result means nothing to charge.
        """
        return -numeraire_delta if self.numeraire_is_input else numeraire_delta


def numeraire_of(key: PoolKey) -> Currency:
    """Numeraire sits in position 1 unless currency0 is the native currency"""
    return key.currency0 if key.currency0.is_native else key.currency1


def asset_of(key: PoolKey) -> Currency:
    return key.other(numeraire_of(key))


def classify_swap(key: PoolKey, params: SwapParams) -> SwapKind:
    numeraire_is_zero = key.currency0.is_native
    # Selling currency0 when the numeraire is currency0 (or currency1 otherwise) sells numeraire
    numeraire_in = params.zero_for_one == numeraire_is_zero

    if numeraire_in:
        if params.exact_input:
            return SwapKind.EXACT_IN_NUMERAIRE_FOR_ASSET
        return SwapKind.EXACT_OUT_NUMERAIRE_FOR_ASSET
    if params.exact_input:
        return SwapKind.EXACT_IN_ASSET_FOR_NUMERAIRE
    return SwapKind.EXACT_OUT_ASSET_FOR_NUMERAIRE
