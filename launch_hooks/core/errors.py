#!/usr/bin/env python3
"""
Exception hierarchy for the launch hooks.

Three families:
- AuthorizationError: a caller lacks the reference or capability an operation requires
- ConfigurationError: invalid launch parameters or an operation attempted in the wrong lifecycle state
- SettlementError: raised by the in-memory pool manager and token ledger

Every error raised inside a pool manager transition rolls the transition back.
"""


class LaunchHooksError(Exception):
    """Base class for every error raised by this package"""


# Authorization

class AuthorizationError(LaunchHooksError):
    """Caller is not allowed to perform the operation"""


class SenderNotInitializer(AuthorizationError):
    def __init__(self, sender):
        super().__init__(f"Only the paired initializer may call this hook, got {sender!r}")
        self.sender = sender


class SenderNotUnlockHook(AuthorizationError):
    def __init__(self):
        super().__init__("Milestone unlocks require the capability held by the paired unlock hook")


class HookAlreadyRegistered(AuthorizationError):
    def __init__(self):
        super().__init__("Initializer is already paired with a hook")


class HookNotRegistered(AuthorizationError):
    def __init__(self):
        super().__init__("Initializer has no paired hook; construct the hook first")


# Configuration and lifecycle

class ConfigurationError(LaunchHooksError):
    """Launch parameters or lifecycle state reject the operation"""


class PoolAlreadyInitialized(ConfigurationError):
    def __init__(self, asset):
        super().__init__(f"Pool for asset {asset} already exists")
        self.asset = asset


class InvalidPoolFee(ConfigurationError):
    def __init__(self, fee: int):
        super().__init__(f"Fee distribution pools must use a zero LP fee, got {fee}")
        self.fee = fee


class InvalidFeeFraction(ConfigurationError):
    def __init__(self, fee_wad: int):
        super().__init__(f"Fee fraction {fee_wad} outside [0, WAD]")
        self.fee_wad = fee_wad


class InvalidBeneficiaries(ConfigurationError):
    """Beneficiary list is malformed"""


class InvalidCurves(ConfigurationError):
    """Curve list is malformed"""


class InvalidNumerairePosition(ConfigurationError):
    def __init__(self, pool_key):
        super().__init__(
            f"Pool {pool_key.currency0}/{pool_key.currency1} does not place the numeraire "
            f"in the position the fee hook expects"
        )


class NoMilestonePositions(ConfigurationError):
    def __init__(self):
        super().__init__("Milestone launches need at least one milestone position")


class InvalidMilestonePosition(ConfigurationError):
    """Milestone bounds are inverted, misaligned or out of range"""


class MilestoneRangeNotBeyondPrice(ConfigurationError):
    def __init__(self, index: int, tick_lower: int, tick_upper: int, start_tick: int):
        super().__init__(
            f"Milestone {index} [{tick_lower}, {tick_upper}] must lie strictly beyond "
            f"the starting tick {start_tick}"
        )
        self.index = index


class WrongPoolStatus(ConfigurationError):
    def __init__(self, asset, expected, actual):
        super().__init__(f"Pool for {asset} is {actual.name}, expected {expected.name}")
        self.expected = expected
        self.actual = actual


class CannotMigrateInsufficientTick(ConfigurationError):
    def __init__(self, far_tick: int, current_tick: int):
        super().__init__(f"Current tick {current_tick} has not reached far tick {far_tick}")
        self.far_tick = far_tick
        self.current_tick = current_tick


class PositionAlreadyWithdrawn(ConfigurationError):
    def __init__(self, asset, index: int):
        super().__init__(f"Milestone position {index} of {asset} was already withdrawn")
        self.index = index


class UnknownAsset(ConfigurationError):
    def __init__(self, asset):
        super().__init__(f"No pool state recorded for asset {asset}")
        self.asset = asset


class UnknownPool(ConfigurationError):
    def __init__(self, pool_id: str):
        super().__init__(f"Pool {pool_id} was not created by this initializer")
        self.pool_id = pool_id


class UnknownMilestonePosition(ConfigurationError):
    def __init__(self, asset, index: int):
        super().__init__(f"Asset {asset} has no milestone position at index {index}")
        self.index = index


# Settlement

class SettlementError(LaunchHooksError):
    """Raised by the pool manager or token ledger"""


class InsufficientBalance(SettlementError):
    def __init__(self, currency, holder: str, required: int, available: int):
        super().__init__(f"{holder} holds {available} of {currency}, needs {required}")
        self.required = required
        self.available = available


class PoolNotInitialized(SettlementError):
    def __init__(self, pool_id: str):
        super().__init__(f"Pool {pool_id} is not initialized")


class PoolAlreadyExists(SettlementError):
    def __init__(self, pool_id: str):
        super().__init__(f"Pool {pool_id} is already initialized")


class CurrenciesOutOfOrder(SettlementError):
    def __init__(self, currency0, currency1):
        super().__init__(f"currency0 {currency0} must sort strictly below currency1 {currency1}")


class TickMisaligned(SettlementError):
    def __init__(self, tick: int, tick_spacing: int):
        super().__init__(f"Tick {tick} is not a multiple of spacing {tick_spacing}")


class InvalidTickRange(SettlementError):
    def __init__(self, tick_lower: int, tick_upper: int):
        super().__init__(f"Invalid tick range [{tick_lower}, {tick_upper}]")


class SwapAmountCannotBeZero(SettlementError):
    def __init__(self):
        super().__init__("amount_specified must be non-zero")


class HookDeltaExceedsSwapAmount(SettlementError):
    def __init__(self):
        super().__init__("Hook delta flips the sign of the swap amount")


class InvalidPriceLimit(SettlementError):
    def __init__(self, sqrt_price_x96: int, limit: int):
        super().__init__(f"Price limit {limit} is on the wrong side of current price {sqrt_price_x96}")


class CannotUpdateEmptyPosition(SettlementError):
    def __init__(self):
        super().__init__("Cannot poke a position without liquidity")


class InsufficientLiquidity(SettlementError):
    def __init__(self, held: int, requested: int):
        super().__init__(f"Position holds {held} liquidity, cannot remove {requested}")
