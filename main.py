#!/usr/bin/env python3
"""
Main entry point for the launch hook simulation.

Launches an asset through the fee distribution or milestone unlock hook,
drives random swaps against the pool and stores the swap log, summary and
charts in a numbered results directory.
"""

import argparse
import logging
import sys
import time
from datetime import datetime

from launch_hooks.analysis.charts import LaunchChartGenerator
from launch_hooks.analysis.results import ResultsManager, RunMetadata
from launch_hooks.config.schemas import HookType, LaunchConfig, create_default_config, load_config
from launch_hooks.core.errors import LaunchHooksError
from launch_hooks.engine.launch_engine import LaunchSimulationEngine

logger = logging.getLogger(__name__)


def run_launch(config: LaunchConfig) -> dict:
    """Run a single launch simulation"""
    engine = LaunchSimulationEngine(config)
    return engine.run()


def print_results_summary(summary: dict):
    """Print a formatted summary of a launch run"""
    print("\n" + "=" * 80)
    print("LAUNCH SIMULATION SUMMARY")
    print("=" * 80)
    print(f"Launch: {summary['name']} ({summary['hook_type']} hook)")
    print(f"Asset is currency0: {summary['asset_is_token0']}")
    print(f"Ticks: start {summary['start_tick']}, final {summary['final_tick']}, far {summary['far_tick']}")
    print(f"Final price: {summary['final_price']:.6f} numeraire per asset")
    print(f"Swaps: {summary['swaps_executed']} executed, {summary['swaps_failed']} failed")
    print(f"Pool status: {summary['pool_status']}")
    print()

    if summary["beneficiary_payouts"]:
        print(f"Beneficiary fees paid: {summary['total_fees_paid']:,.4f}")
        for beneficiary, amount in summary["beneficiary_payouts"].items():
            print(f"  {beneficiary}: {amount:,.4f}")
        print(f"Undistributed dust: {summary['undistributed_dust']}")
        print()

    if "milestones_total" in summary:
        print(f"Milestones unlocked: {summary['milestones_unlocked']}/{summary['milestones_total']}")
        for recipient, amount in summary["milestone_payouts"].items():
            print(f"  {recipient}: {amount:,.4f}")
        print()

    if summary["exited"]:
        proceeds = summary["exit_proceeds"]
        print(f"Exited: airlock received ({proceeds[0]:,.4f}, {proceeds[1]:,.4f})")


def main():
    """Main function with command-line interface"""
    parser = argparse.ArgumentParser(description="Launch Hook Simulation")
    parser.add_argument("--config", type=str, help="Path to configuration file (JSON)")
    parser.add_argument("--hook", choices=[h.value for h in HookType], default=HookType.FEE.value,
                        help="Hook used by the default configuration")
    parser.add_argument("--swaps", type=int, help="Number of swaps to simulate")
    parser.add_argument("--seed", type=int, help="Random seed for reproducibility")
    parser.add_argument("--results-dir", type=str, default="results", help="Base results directory")
    parser.add_argument("--charts", action="store_true", help="Generate charts")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.config:
            logger.info("Loading configuration from %s", args.config)
            config = load_config(args.config)
        else:
            config = create_default_config(HookType(args.hook))

        if args.swaps is not None:
            config.trading.num_swaps = args.swaps
        if args.seed is not None:
            config.random_seed = args.seed

        start = time.time()
        results = run_launch(config)
        execution_time = time.time() - start

        manager = ResultsManager(args.results_dir)
        run_dir = manager.create_run_directory(config.name)
        metadata = RunMetadata(
            run_id=run_dir.name,
            launch_name=config.name,
            timestamp=datetime.now().isoformat(),
            parameters=results["config"],
            execution_time=execution_time,
        )
        manager.save_results(run_dir, results, metadata)

        if args.charts:
            LaunchChartGenerator().generate_launch_charts(results, run_dir / "charts")

        print_results_summary(results["summary"])
        print(f"\nResults saved to {run_dir}")

    except (LaunchHooksError, ValueError, OSError) as e:
        logger.error("Simulation failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
