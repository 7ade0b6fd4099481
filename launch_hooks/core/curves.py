#!/usr/bin/env python3
"""
Multicurve Launch Layout

Curves are written from the point of view of an asset sorting as currency0:
liquidity sits above the starting price and the price rises as the asset is
bought. For an asset sorting as currency1 the curves are mirrored around tick 0.

- adjust_curves: validate, mirror and derive the starting and far ticks
- curve_to_positions: reference slicing of the bonding-curve supply into positions
"""

import logging
from typing import List, Sequence, Tuple

from .errors import InvalidCurves
from .fixed_point import WAD, mul_wad_down
from .tick_math import (
    in_tick_bounds, is_aligned, liquidity_for_amount0, liquidity_for_amount1,
    tick_to_sqrt_price_x96,
)
from .types import Curve, Position

logger = logging.getLogger(__name__)


def validate_curves(curves: Sequence[Curve], tick_spacing: int) -> None:
    if tick_spacing <= 0:
        raise InvalidCurves(f"Tick spacing must be positive, got {tick_spacing}")
    if not curves:
        raise InvalidCurves("At least one curve is required")

    total_shares = 0
    for i, curve in enumerate(curves):
        if curve.tick_lower >= curve.tick_upper:
            raise InvalidCurves(f"Curve {i} has inverted bounds [{curve.tick_lower}, {curve.tick_upper}]")
        if not (in_tick_bounds(curve.tick_lower) and in_tick_bounds(curve.tick_upper)):
            raise InvalidCurves(f"Curve {i} lies outside the tick bounds")
        if not (is_aligned(curve.tick_lower, tick_spacing) and is_aligned(curve.tick_upper, tick_spacing)):
            raise InvalidCurves(f"Curve {i} is not aligned to tick spacing {tick_spacing}")
        if curve.num_positions <= 0:
            raise InvalidCurves(f"Curve {i} needs at least one position")
        if (curve.tick_upper - curve.tick_lower) // tick_spacing < curve.num_positions:
            raise InvalidCurves(f"Curve {i} is too narrow for {curve.num_positions} positions")
        if curve.shares <= 0:
            raise InvalidCurves(f"Curve {i} has a non-positive share")
        total_shares += curve.shares

    if total_shares != WAD:
        raise InvalidCurves(f"Curve shares sum to {total_shares}, expected {WAD}")


def adjust_curves(
    curves: Sequence[Curve],
    tick_spacing: int,
    is_token0: bool
) -> Tuple[List[Curve], int, int]:
    """
    Orient curves for the asset's currency slot.

    Returns:
        (adjusted curves, starting tick, far tick)
    """
    validate_curves(curves, tick_spacing)

    if is_token0:
        adjusted = list(curves)
        start_tick = min(c.tick_lower for c in adjusted)
        far_tick = max(c.tick_upper for c in adjusted)
    else:
        adjusted = [Curve(-c.tick_upper, -c.tick_lower, c.num_positions, c.shares) for c in curves]
        start_tick = max(c.tick_upper for c in adjusted)
        far_tick = min(c.tick_lower for c in adjusted)

    return adjusted, start_tick, far_tick


def curve_to_positions(
    curves: Sequence[Curve],
    tick_spacing: int,
    supply: int,
    is_token0: bool
) -> List[Position]:
    """
    Split `supply` across adjusted curves as single-sided asset liquidity.

    Each curve gets its WAD share of supply (the last curve takes the rounding
    residue) cut into `num_positions` contiguous slices that walk away from the
    starting price. Liquidity is sized so the minted amounts never exceed the
    allocation.
    """
    positions: List[Position] = []
    allocated = 0

    for index, curve in enumerate(curves):
        if index == len(curves) - 1:
            curve_supply = supply - allocated
        else:
            curve_supply = mul_wad_down(supply, curve.shares)
        allocated += curve_supply

        step = ((curve.tick_upper - curve.tick_lower) // tick_spacing // curve.num_positions) * tick_spacing
        per_position = curve_supply // curve.num_positions

        for i in range(curve.num_positions):
            last = i == curve.num_positions - 1
            if is_token0:
                tick_lower = curve.tick_lower + i * step
                tick_upper = curve.tick_upper if last else tick_lower + step
            else:
                tick_upper = curve.tick_upper - i * step
                tick_lower = curve.tick_lower if last else tick_upper - step

            sqrt_lower = tick_to_sqrt_price_x96(tick_lower)
            sqrt_upper = tick_to_sqrt_price_x96(tick_upper)
            if is_token0:
                liquidity = liquidity_for_amount0(sqrt_lower, sqrt_upper, per_position)
            else:
                liquidity = liquidity_for_amount1(sqrt_lower, sqrt_upper, per_position)

            if liquidity > 0:
                positions.append(Position(tick_lower, tick_upper, liquidity, salt=len(positions)))

    logger.debug("Laid out %d positions from %d curves", len(positions), len(curves))
    return positions
