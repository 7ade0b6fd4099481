"""
Contracts between the hooks, the initializers and the settlement layer.

The hooks and initializers only talk to the settlement layer through
SettlementEngine and TokenTransfer; the in-memory PoolManager and TokenLedger
are one implementation of each.
"""

from typing import (
    Any, ContextManager, List, Protocol, Sequence, Tuple,
)

from .types import (
    BalanceDelta, BeneficiaryData, Currency, Curve,
    ModifyLiquidityParams, PoolKey, PoolState, PoolStatus, Position, Slot0, SwapParams,
)


class TransitionParticipant(Protocol):
    """State restored when a pool manager transition aborts"""

    def snapshot(self) -> Any: ...

    def restore(self, snapshot: Any) -> None: ...


class TokenTransfer(Protocol):
    def balance_of(self, currency: Currency, holder) -> int: ...

    def transfer(self, currency: Currency, sender, to, amount: int) -> None: ...


class SettlementEngine(Protocol):
    address: str
    ledger: TokenTransfer

    def get_slot0(self, pool_id: str) -> Slot0: ...

    def current_tick(self, pool_id: str) -> int: ...

    def balance_of(self, currency: Currency, holder) -> int: ...

    def withdraw(self, currency: Currency, to, amount: int) -> None: ...

    def initialize(self, sender, key: PoolKey, sqrt_price_x96: int) -> int: ...

    def modify_liquidity(
        self, sender, key: PoolKey, params: ModifyLiquidityParams
    ) -> Tuple[BalanceDelta, BalanceDelta]: ...

    def swap(self, sender, key: PoolKey, params: SwapParams) -> BalanceDelta: ...

    def transition(self) -> ContextManager[None]: ...

    def register_participant(self, participant: TransitionParticipant) -> None: ...


class CurveToPositions(Protocol):
    def __call__(
        self, curves: Sequence[Curve], tick_spacing: int, supply: int, is_token0: bool
    ) -> List[Position]: ...



class BeneficiaryRegistry(Protocol):
    """Initializer view used by the fee distribution hook"""

    def get_status(self, asset: Currency) -> PoolStatus: ...

    def get_state(self, asset: Currency) -> PoolState: ...

    def get_beneficiaries(self, asset: Currency) -> Tuple[BeneficiaryData, ...]: ...

    def asset_for_pool(self, pool_id: str) -> Currency: ...


class MilestoneRegistry(Protocol):
    """Initializer view used by the milestone unlock hook"""

    def asset_for_pool(self, pool_id: str) -> Currency: ...

    def get_active_milestone_positions(self, asset: Currency) -> List[Tuple[int, Any]]: ...

    def unlock_position(self, asset: Currency, numeraire: Currency, index: int, capability: Any) -> int: ...
