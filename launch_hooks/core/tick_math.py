#!/usr/bin/env python3
"""
Concentrated Liquidity Tick Math

Uniswap-style tick math used by the in-memory pool manager and the initializers:
- Tick-based price system with Q64.96 fixed-point sqrt prices
- Token amount deltas for a liquidity range with explicit rounding direction
- Swap step computation (v4 sign convention: negative remaining = exact input)
- Liquidity sizing for single-sided positions
- Tick bitmap for next-initialized-tick lookups
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

# Tick bounds and Q64.96 constants
MIN_TICK = -887272
MAX_TICK = 887272
Q96 = 2 ** 96
MIN_SQRT_RATIO = 4295128739  # sqrt(1.0001^-887272) * 2^96
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342  # sqrt(1.0001^887272) * 2^96

# LP fees are expressed in pips (hundredths of a basis point)
PIPS_DENOMINATOR = 1_000_000


def tick_to_sqrt_price_x96(tick: int) -> int:
    """Convert tick to sqrt price in Q64.96 format"""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")

    sqrt_price = 1.0001 ** (tick / 2.0)
    sqrt_price_x96 = int(sqrt_price * Q96)

    return max(MIN_SQRT_RATIO, min(MAX_SQRT_RATIO, sqrt_price_x96))


def sqrt_price_x96_to_tick(sqrt_price_x96: int) -> int:
    """Greatest tick whose sqrt price does not exceed sqrt_price_x96"""
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 > MAX_SQRT_RATIO:
        raise ValueError(f"sqrt_price_x96 {sqrt_price_x96} out of bounds")

    # Binary search keeps the inverse consistent with tick_to_sqrt_price_x96
    tick_low = MIN_TICK
    tick_high = MAX_TICK

    while tick_high - tick_low > 1:
        tick_mid = (tick_low + tick_high) // 2
        if tick_to_sqrt_price_x96(tick_mid) <= sqrt_price_x96:
            tick_low = tick_mid
        else:
            tick_high = tick_mid

    if tick_to_sqrt_price_x96(tick_high) <= sqrt_price_x96:
        return tick_high
    return tick_low


def mul_div(a: int, b: int, denominator: int) -> int:
    if denominator == 0:
        raise ValueError("Division by zero")
    return (a * b) // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    if denominator == 0:
        raise ValueError("Division by zero")
    return (a * b + denominator - 1) // denominator


def get_amount0_delta(
    sqrt_price_a_x96: int,
    sqrt_price_b_x96: int,
    liquidity: int,
    round_up: bool = False
) -> int:
    """Amount of token0 spanned by `liquidity` between two sqrt prices"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96

    if liquidity == 0 or sqrt_price_a_x96 == sqrt_price_b_x96:
        return 0

    numerator1 = liquidity << 96
    numerator2 = sqrt_price_b_x96 - sqrt_price_a_x96

    if round_up:
        return mul_div_rounding_up(
            mul_div_rounding_up(numerator1, numerator2, sqrt_price_b_x96), 1, sqrt_price_a_x96
        )
    return mul_div(numerator1, numerator2, sqrt_price_b_x96) // sqrt_price_a_x96


def get_amount1_delta(
    sqrt_price_a_x96: int,
    sqrt_price_b_x96: int,
    liquidity: int,
    round_up: bool = False
) -> int:
    """Amount of token1 spanned by `liquidity` between two sqrt prices"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96

    if round_up:
        return mul_div_rounding_up(liquidity, sqrt_price_b_x96 - sqrt_price_a_x96, Q96)
    return mul_div(liquidity, sqrt_price_b_x96 - sqrt_price_a_x96, Q96)


def get_next_sqrt_price_from_amount0_rounding_up(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """Next sqrt price after adding or removing `amount` of token0"""
    if amount == 0:
        return sqrt_price_x96

    if liquidity == 0:
        raise ValueError("Liquidity cannot be zero")

    numerator1 = liquidity << 96
    product = amount * sqrt_price_x96

    if add:
        # Adding token0 pushes the price down: L * sqrtP / (L + amount * sqrtP)
        return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 + product)

    # Removing token0 pushes the price up
    if numerator1 <= product:
        raise ValueError("Amount exceeds available token0 liquidity")
    return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 - product)


def get_next_sqrt_price_from_amount1_rounding_down(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """Next sqrt price after adding or removing `amount` of token1"""
    if amount == 0:
        return sqrt_price_x96

    if liquidity == 0:
        raise ValueError("Liquidity cannot be zero")

    if add:
        return sqrt_price_x96 + mul_div(amount, Q96, liquidity)

    quotient = mul_div_rounding_up(amount, Q96, liquidity)
    if sqrt_price_x96 <= quotient:
        raise ValueError("Amount exceeds available token1 liquidity")
    return sqrt_price_x96 - quotient


def get_next_sqrt_price_from_input(
    sqrt_price_x96: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool
) -> int:
    if zero_for_one:
        return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_in, True)
    return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(
    sqrt_price_x96: int,
    liquidity: int,
    amount_out: int,
    zero_for_one: bool
) -> int:
    if zero_for_one:
        return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_out, False)
    return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_out, False)


def compute_swap_step(
    sqrt_price_current_x96: int,
    sqrt_price_target_x96: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int
) -> Tuple[int, int, int, int]:
    """
    Swap within a single liquidity range.

    Args:
        sqrt_price_current_x96: Price at the start of the step
        sqrt_price_target_x96: Price the step may not move past
        liquidity: Active liquidity for the step
        amount_remaining: Negative for exact input, positive for exact output
        fee_pips: LP fee in pips

    Returns:
        (sqrt_price_next_x96, amount_in, amount_out, fee_amount)
    """
    zero_for_one = sqrt_price_current_x96 >= sqrt_price_target_x96
    exact_input = amount_remaining < 0

    amount_in = 0
    amount_out = 0

    if exact_input:
        amount_remaining_less_fee = mul_div(-amount_remaining, PIPS_DENOMINATOR - fee_pips, PIPS_DENOMINATOR)
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, True)

        if amount_remaining_less_fee >= amount_in:
            sqrt_price_next_x96 = sqrt_price_target_x96
        else:
            sqrt_price_next_x96 = get_next_sqrt_price_from_input(
                sqrt_price_current_x96, liquidity, amount_remaining_less_fee, zero_for_one
            )
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, False)

        if amount_remaining >= amount_out:
            sqrt_price_next_x96 = sqrt_price_target_x96
        else:
            sqrt_price_next_x96 = get_next_sqrt_price_from_output(
                sqrt_price_current_x96, liquidity, amount_remaining, zero_for_one
            )

    reached_target = sqrt_price_next_x96 == sqrt_price_target_x96

    # Recompute the legs that were not fixed by reaching the target
    if zero_for_one:
        if not (reached_target and exact_input):
            amount_in = get_amount0_delta(sqrt_price_next_x96, sqrt_price_current_x96, liquidity, True)
        if not (reached_target and not exact_input):
            amount_out = get_amount1_delta(sqrt_price_next_x96, sqrt_price_current_x96, liquidity, False)
    else:
        if not (reached_target and exact_input):
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_next_x96, liquidity, True)
        if not (reached_target and not exact_input):
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_next_x96, liquidity, False)

    # Exact output never pays out more than requested
    if not exact_input and amount_out > amount_remaining:
        amount_out = amount_remaining

    if exact_input and not reached_target:
        # Whatever input was not consumed by the price move is kept as fee
        fee_amount = -amount_remaining - amount_in
    else:
        fee_amount = mul_div_rounding_up(amount_in, fee_pips, PIPS_DENOMINATOR - fee_pips)

    return sqrt_price_next_x96, amount_in, amount_out, fee_amount


def liquidity_for_amount0(sqrt_price_a_x96: int, sqrt_price_b_x96: int, amount0: int) -> int:
    """Liquidity bought by `amount0` of token0 spread across [a, b]"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96
    intermediate = mul_div(sqrt_price_a_x96, sqrt_price_b_x96, Q96)
    return mul_div(amount0, intermediate, sqrt_price_b_x96 - sqrt_price_a_x96)


def liquidity_for_amount1(sqrt_price_a_x96: int, sqrt_price_b_x96: int, amount1: int) -> int:
    """Liquidity bought by `amount1` of token1 spread across [a, b]"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96
    return mul_div(amount1, Q96, sqrt_price_b_x96 - sqrt_price_a_x96)


def is_aligned(tick: int, tick_spacing: int) -> bool:
    return tick % tick_spacing == 0


def in_tick_bounds(tick: int) -> bool:
    return MIN_TICK <= tick <= MAX_TICK


@dataclass
class TickInfo:
    """Liquidity referencing a single initialized tick"""
    liquidity_gross: int = 0  # Total liquidity referencing this tick
    liquidity_net: int = 0    # Net liquidity change when crossing left to right


@dataclass
class TickBitmap:
    """Initialized ticks packed into 256-bit words keyed by word index"""
    bitmap: Dict[int, int] = field(default_factory=dict)

    def next_initialized_tick(self, tick: int, tick_spacing: int, zero_for_one: bool) -> int:
        """
        Next initialized tick in the swap direction.

        Moving down (zero_for_one) includes `tick` itself; moving up starts strictly
        above it. Returns MIN_TICK / MAX_TICK when nothing is initialized that way.
        """
        compressed = tick // tick_spacing

        if zero_for_one:
            word_pos = compressed >> 8
            bit_pos = compressed & 0xFF

            # Keep bits at or below the current position
            masked = self.bitmap.get(word_pos, 0) & ((1 << (bit_pos + 1)) - 1)
            if masked:
                return (word_pos * 256 + self._most_significant_bit(masked)) * tick_spacing

            lower_words = [w for w in self.bitmap if w < word_pos]
            if not lower_words:
                return MIN_TICK
            word_pos = max(lower_words)
            return (word_pos * 256 + self._most_significant_bit(self.bitmap[word_pos])) * tick_spacing

        compressed += 1
        word_pos = compressed >> 8
        bit_pos = compressed & 0xFF

        # Keep bits at or above the next position
        masked = self.bitmap.get(word_pos, 0) & ~((1 << bit_pos) - 1)
        if masked:
            return (word_pos * 256 + self._least_significant_bit(masked)) * tick_spacing

        upper_words = [w for w in self.bitmap if w > word_pos]
        if not upper_words:
            return MAX_TICK
        word_pos = min(upper_words)
        return (word_pos * 256 + self._least_significant_bit(self.bitmap[word_pos])) * tick_spacing

    def is_initialized(self, tick: int, tick_spacing: int) -> bool:
        compressed = tick // tick_spacing
        return bool(self.bitmap.get(compressed >> 8, 0) & (1 << (compressed & 0xFF)))

    def flip_tick(self, tick: int, tick_spacing: int):
        """Flip tick state when its gross liquidity moves to or from zero"""
        compressed = tick // tick_spacing
        word_pos = compressed >> 8
        bit_pos = compressed & 0xFF

        self.bitmap[word_pos] = self.bitmap.get(word_pos, 0) ^ (1 << bit_pos)

        if self.bitmap[word_pos] == 0:
            del self.bitmap[word_pos]

    def _most_significant_bit(self, x: int) -> int:
        return x.bit_length() - 1

    def _least_significant_bit(self, x: int) -> int:
        return (x & -x).bit_length() - 1
