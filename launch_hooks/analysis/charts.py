#!/usr/bin/env python3
"""
Launch Visualization

Charts for a single launch simulation:
- Pool tick per swap, with milestone thresholds and the far tick
- Cumulative numeraire fees paid to beneficiaries
- Trade flow: realized swap sizes by side and outcome
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

logger = logging.getLogger(__name__)


class LaunchChartGenerator:
    """Generates the chart set for one launch run"""

    def __init__(self):
        self._setup_styling()

    def _setup_styling(self):
        plt.style.use("default")
        sns.set_palette("husl")

        plt.rcParams.update({
            "figure.figsize": (14, 8),
            "font.size": 11,
            "axes.titlesize": 15,
            "axes.labelsize": 12,
            "legend.fontsize": 10,
            "xtick.labelsize": 10,
            "ytick.labelsize": 10,
        })

    def generate_launch_charts(self, results: Dict[str, Any], charts_dir: Path) -> List[Path]:
        """Write every chart that has data; returns the files created"""
        charts_dir = Path(charts_dir)
        charts_dir.mkdir(parents=True, exist_ok=True)

        swaps = results.get("swaps")
        summary = results.get("summary", {})
        if swaps is None or swaps.empty:
            logger.info("No swaps recorded, skipping charts")
            return []

        generated = []
        for create in (self._create_tick_path_chart, self._create_fee_chart, self._create_trade_flow_chart):
            chart_path = create(swaps, summary, charts_dir)
            if chart_path is not None:
                generated.append(chart_path)

        logger.info("Generated %d launch charts in %s", len(generated), charts_dir)
        return generated

    def _create_tick_path_chart(self, swaps: pd.DataFrame, summary: Dict, charts_dir: Path) -> Optional[Path]:
        """Pool tick after each swap"""
        fig, ax = plt.subplots(figsize=(14, 7))

        ok = swaps[swaps["status"] == "ok"]
        ax.plot(swaps["step"], swaps["tick"], linewidth=1.5, label="Pool tick")
        failed = swaps[swaps["status"] != "ok"]
        if not failed.empty:
            ax.scatter(failed["step"], failed["tick"], marker="x", color="#DC143C", label="Failed swap", zorder=3)

        for i, threshold in enumerate(summary.get("milestone_thresholds", [])):
            ax.axhline(y=threshold, color="#2E8B57", linestyle="--", alpha=0.7,
                       label="Milestone threshold" if i == 0 else None)

        if "far_tick" in summary:
            ax.axhline(y=summary["far_tick"], color="black", linestyle=":", alpha=0.6, label="Far tick")

        unlocks = ok[ok["milestones_unlocked"] > 0] if "milestones_unlocked" in ok else ok.iloc[0:0]
        if not unlocks.empty:
            ax.scatter(unlocks["step"], unlocks["tick"], s=80, color="#FF8C00", label="Milestone unlock", zorder=4)

        ax.set_xlabel("Swap")
        ax.set_ylabel("Tick")
        ax.set_title(f"{summary.get('name', 'Launch')}: Pool Tick Path")
        ax.legend()
        ax.grid(True, alpha=0.3)

        chart_path = charts_dir / "tick_path.png"
        plt.tight_layout()
        plt.savefig(chart_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return chart_path

    def _create_fee_chart(self, swaps: pd.DataFrame, summary: Dict, charts_dir: Path) -> Optional[Path]:
        if "fee_paid" not in swaps or swaps["fee_paid"].sum() <= 0:
            return None

        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(14, 10), height_ratios=[2, 1])

        ax1.plot(swaps["step"], swaps["fee_paid"].cumsum(), color="#FF6B35", linewidth=2)
        ax1.set_ylabel("Cumulative Fees (numeraire)")
        ax1.set_title("Beneficiary Fees Over Time")
        ax1.grid(True, alpha=0.3)

        payouts = summary.get("beneficiary_payouts", {})
        if payouts:
            labels = [f"{addr[:6]}...{addr[-4:]}" for addr in payouts]
            sns.barplot(x=labels, y=list(payouts.values()), ax=ax2)
            ax2.set_ylabel("Paid (numeraire)")
            ax2.set_title("Payout by Beneficiary")

        chart_path = charts_dir / "fees.png"
        plt.tight_layout()
        plt.savefig(chart_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return chart_path

    def _create_trade_flow_chart(self, swaps: pd.DataFrame, summary: Dict, charts_dir: Path) -> Optional[Path]:
        ok = swaps[swaps["status"] == "ok"]
        if ok.empty:
            return None

        fig, ax = plt.subplots(figsize=(12, 6))
        counts = ok.groupby(["side", "exact_output"]).size().reset_index(name="swaps")
        counts["mode"] = counts["exact_output"].map({True: "exact output", False: "exact input"})
        sns.barplot(data=counts, x="side", y="swaps", hue="mode", ax=ax)
        ax.set_title(f"Trade Flow ({summary.get('swaps_failed', 0)} failed)")
        ax.grid(True, axis="y", alpha=0.3)

        chart_path = charts_dir / "trade_flow.png"
        plt.tight_layout()
        plt.savefig(chart_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return chart_path
