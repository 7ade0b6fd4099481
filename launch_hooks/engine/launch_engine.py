#!/usr/bin/env python3
"""
Launch Simulation Engine

Launches an asset through the configured hook/initializer pair and drives
random order flow against the pool:
- Traders buy and sell with log-normal sizes, mixing exact-input and exact-output swaps
- Fee payouts, milestone unlocks and failed swaps are recorded per swap
- After trading, an INITIALIZED pool past its far tick exits and a LOCKED pool
  has its LP fees collected
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from ..config.schemas import HookType, LaunchConfig
from ..core.addresses import ZERO_ADDRESS, derive_address
from ..core.errors import LaunchHooksError
from ..core.tick_math import Q96
from ..core.types import Currency, ExitResult, PoolStatus, SwapParams
from ..hooks.fee_hook import FeeDistributionHook
from ..hooks.milestone_hook import MilestoneUnlockHook
from ..initializer.milestone import MilestoneInitializer
from ..initializer.multicurve import MulticurveInitializer
from ..settlement.ledger import TokenLedger
from ..settlement.pool_manager import PoolManager

logger = logging.getLogger(__name__)


class LaunchSimulationEngine:
    """Single launch, many swaps"""

    def __init__(self, config: LaunchConfig):
        self.config = config
        self.rng = np.random.default_rng(config.random_seed)

        self.ledger = TokenLedger()
        self.pool_manager = PoolManager(self.ledger)
        self.airlock = derive_address(f"airlock:{config.name}")
        self.asset, self.numeraire = self._create_currencies()

        if config.hook_type == HookType.MILESTONE:
            self.initializer = MilestoneInitializer(self.pool_manager, self.ledger, self.airlock)
            self.hook = MilestoneUnlockHook(self.pool_manager, self.initializer)
        else:
            self.initializer = MulticurveInitializer(self.pool_manager, self.ledger, self.airlock)
            self.hook = FeeDistributionHook(self.pool_manager, self.initializer, config.fee_wad)

        self.traders = [derive_address(f"trader:{config.name}:{i}") for i in range(config.trading.num_traders)]

        self.pool_id: Optional[str] = None
        self.pool_key = None
        self.swap_records: List[Dict] = []
        self.exit_result: Optional[ExitResult] = None
        self.lp_fees_collected = (0, 0)

    def _create_currencies(self):
        """Asset always takes the lower derived address so non-native numeraires sit in slot 1"""
        config = self.config
        if config.native_numeraire:
            asset = Currency(derive_address(f"asset:{config.name}"), config.asset_symbol)
            return asset, Currency(ZERO_ADDRESS, config.numeraire_symbol)

        low, high = sorted(
            [derive_address(f"asset:{config.name}"), derive_address(f"numeraire:{config.name}")],
            key=lambda a: int(a, 16)
        )
        return Currency(low, config.asset_symbol), Currency(high, config.numeraire_symbol)

    @property
    def asset_is_token0(self) -> bool:
        return self.asset < self.numeraire

    def from_units(self, amount: int) -> float:
        return amount / 10 ** self.config.decimals

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def launch(self) -> str:
        """Fund accounts and create the pool"""
        config = self.config
        supply = config.to_units(config.bonding_curve_supply)

        self.ledger.mint(self.asset, self.airlock, supply)
        for trader in self.traders:
            self.ledger.mint(self.numeraire, trader, config.to_units(config.trading.trader_numeraire_balance))
        # Other pools' funds held by the pool manager
        self.ledger.mint(self.numeraire, self.pool_manager.address, config.to_units(config.trading.custody_seed))

        self.pool_id = self.initializer.initialize(
            self.asset, self.numeraire, supply, config.init_data(self.asset_is_token0)
        )
        self.pool_key = self.initializer.get_state(self.asset).pool_key
        logger.info("Launched %s in pool %s (%s)", self.asset, self.pool_id[:10], config.hook_type.value)
        return self.pool_id

    # ------------------------------------------------------------------
    # Market views
    # ------------------------------------------------------------------

    def asset_price(self) -> float:
        """Numeraire per asset"""
        sqrt_price = self.pool_manager.get_slot0(self.pool_id).sqrt_price_x96 / Q96
        price = sqrt_price ** 2
        return price if self.asset_is_token0 else 1 / price

    def milestone_thresholds(self) -> List[int]:
        """Pool tick each milestone unlocks past"""
        if self.config.hook_type != HookType.MILESTONE:
            return []
        positions = self.initializer.get_milestone_positions(self.asset)
        return [p.tick_upper if self.asset_is_token0 else p.tick_lower for p in positions]

    def _beneficiary_balances(self) -> Dict[str, int]:
        if self.pool_id is None:
            return {}
        return {
            b.beneficiary: self.ledger.balance_of(self.numeraire, b.beneficiary)
            for b in self.initializer.get_beneficiaries(self.asset)
        }

    def _undistributed(self) -> int:
        return getattr(self.hook, "undistributed", {}).get(self.numeraire, 0)

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def _next_order(self, trader: str) -> Optional[Dict]:
        trading = self.config.trading
        size = float(self.rng.lognormal(mean=np.log(trading.mean_trade_size), sigma=trading.trade_size_sigma))
        exact_output = bool(self.rng.random() < trading.exact_output_probability)
        holdings = self.ledger.balance_of(self.asset, trader)
        buy = bool(self.rng.random() < trading.buy_probability) or holdings == 0
        price = self.asset_price()

        if buy:
            zero_for_one = not self.asset_is_token0
            if exact_output:
                amount = self.config.to_units(size / price)
            else:
                amount = -self.config.to_units(size)
        else:
            zero_for_one = self.asset_is_token0
            if exact_output:
                numeraire_out = min(size, 0.5 * self.from_units(holdings) * price)
                amount = self.config.to_units(numeraire_out)
            else:
                amount = -int(holdings * float(self.rng.uniform(0.1, 0.9)))

        if amount == 0:
            return None
        return {"side": "buy" if buy else "sell", "exact_output": exact_output,
                "params": SwapParams(zero_for_one, amount)}

    def _execute_swap(self, step: int, trader: str) -> Optional[Dict]:
        order = self._next_order(trader)
        if order is None:
            return None

        payouts_before = self._beneficiary_balances()
        dust_before = self._undistributed()
        active_before = self._active_milestones()

        record = {
            "step": step,
            "trader": trader,
            "side": order["side"],
            "exact_output": order["exact_output"],
            "amount_specified": order["params"].amount_specified,
            "status": "ok",
            "error": None,
            "amount0": 0,
            "amount1": 0,
        }

        try:
            delta = self.pool_manager.swap(trader, self.pool_key, order["params"])
            record["amount0"] = delta.amount0
            record["amount1"] = delta.amount1
        except LaunchHooksError as exc:
            record["status"] = "failed"
            record["error"] = type(exc).__name__
            logger.debug("Swap %d by %s failed: %s", step, trader, exc)

        payouts_after = self._beneficiary_balances()
        fee_paid = sum(payouts_after.values()) - sum(payouts_before.values()) + self._undistributed() - dust_before

        slot0 = self.pool_manager.get_slot0(self.pool_id)
        record.update({
            "tick": slot0.tick,
            "price": self.asset_price(),
            "fee_paid": self.from_units(fee_paid),
            "milestones_unlocked": active_before - self._active_milestones(),
            "pool_status": self.initializer.get_status(self.asset).value,
        })
        return record

    def _active_milestones(self) -> int:
        if self.config.hook_type != HookType.MILESTONE:
            return 0
        return self.initializer.get_num_of_active_milestone_positions(self.asset)

    def run(self) -> Dict:
        """Launch, trade and settle; returns {"swaps": DataFrame, "summary": dict}"""
        if self.pool_id is None:
            self.launch()

        start_tick = self.pool_manager.current_tick(self.pool_id)
        for step in range(self.config.trading.num_swaps):
            trader = self.traders[int(self.rng.integers(len(self.traders)))]
            record = self._execute_swap(step, trader)
            if record is not None:
                self.swap_records.append(record)

        self._settle_launch()

        swaps = pd.DataFrame(self.swap_records)
        return {
            "swaps": swaps,
            "summary": self._build_summary(swaps, start_tick),
            "config": self.config.model_dump(mode="json"),
        }

    def _settle_launch(self) -> None:
        status = self.initializer.get_status(self.asset)
        state = self.initializer.get_state(self.asset)
        tick = self.pool_manager.current_tick(self.pool_id)
        reached_far_tick = tick >= state.far_tick if self.asset_is_token0 else tick <= state.far_tick

        if status == PoolStatus.INITIALIZED and reached_far_tick:
            self.exit_result = self.initializer.exit_liquidity(self.asset)
        elif status == PoolStatus.LOCKED:
            fees = self.initializer.collect_fees(self.pool_id)
            self.lp_fees_collected = (fees.amount0, fees.amount1)

    def _build_summary(self, swaps: pd.DataFrame, start_tick: int) -> Dict:
        state = self.initializer.get_state(self.asset)
        executed = int((swaps["status"] == "ok").sum()) if not swaps.empty else 0
        failed = int((swaps["status"] == "failed").sum()) if not swaps.empty else 0

        summary = {
            "name": self.config.name,
            "hook_type": self.config.hook_type.value,
            "asset": self.asset.address,
            "numeraire": self.numeraire.address,
            "asset_is_token0": self.asset_is_token0,
            "start_tick": start_tick,
            "far_tick": state.far_tick,
            "final_tick": self.pool_manager.current_tick(self.pool_id),
            "final_price": self.asset_price(),
            "swaps_executed": executed,
            "swaps_failed": failed,
            "pool_status": state.status.value,
            "total_fees_paid": float(swaps["fee_paid"].sum()) if not swaps.empty else 0.0,
            "beneficiary_payouts": {k: self.from_units(v) for k, v in self._beneficiary_balances().items()},
            "undistributed_dust": self._undistributed(),
            "lp_fees_collected": [self.from_units(a) for a in self.lp_fees_collected],
            "exited": self.exit_result is not None,
        }

        if self.exit_result is not None:
            summary["exit_proceeds"] = [
                self.from_units(self.exit_result.balance0), self.from_units(self.exit_result.balance1)
            ]

        if self.config.hook_type == HookType.MILESTONE:
            milestones = self.initializer.get_milestone_positions(self.asset)
            unlock_steps = {}
            if not swaps.empty:
                for _, row in swaps[swaps["milestones_unlocked"] > 0].iterrows():
                    unlock_steps[int(row["step"])] = int(row["milestones_unlocked"])
            summary.update({
                "milestones_total": len(milestones),
                "milestones_unlocked": sum(1 for m in milestones if m.withdrawn),
                "milestone_thresholds": self.milestone_thresholds(),
                "unlock_steps": unlock_steps,
                "milestone_payouts": {
                    m.recipient: self.from_units(self.ledger.balance_of(self.numeraire, m.recipient))
                    for m in milestones
                },
            })

        return summary
