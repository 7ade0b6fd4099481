#!/usr/bin/env python3
"""
Results Management

Stores each launch simulation in its own sequentially numbered run directory:

    <base>/<launch name>/run_003_20240101_120000/
        swaps.csv       one row per simulated swap
        summary.json    launch summary (ticks, fees, unlocks, exit)
        metadata.json   run id, parameters, execution time
        charts/         chart output
"""

import json
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd


@dataclass
class RunMetadata:
    """Metadata for a single launch simulation run"""
    run_id: str
    launch_name: str
    timestamp: str
    parameters: Dict[str, Any]
    execution_time: float
    status: str = "completed"


class ResultsManager:
    """Handles results storage and run numbering"""

    def __init__(self, base_results_dir: str = "results"):
        self.base_results_dir = Path(base_results_dir)
        self._lock = threading.Lock()
        self.base_results_dir.mkdir(parents=True, exist_ok=True)

    def create_run_directory(self, launch_name: str) -> Path:
        """Create `run_<NNN>_<timestamp>` under the launch directory"""
        with self._lock:
            launch_dir = self.base_results_dir / launch_name
            launch_dir.mkdir(exist_ok=True)

            run_number = self._get_next_run_number(launch_dir)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

            run_dir = launch_dir / f"run_{run_number:03d}_{timestamp}"
            run_dir.mkdir(exist_ok=True)
            (run_dir / "charts").mkdir(exist_ok=True)

            return run_dir

    def _get_next_run_number(self, launch_dir: Path) -> int:
        run_numbers = []
        for run_dir in launch_dir.iterdir():
            if not run_dir.is_dir() or not run_dir.name.startswith("run_"):
                continue
            parts = run_dir.name.split("_")
            if len(parts) >= 2 and parts[1].isdigit():
                run_numbers.append(int(parts[1]))

        return max(run_numbers) + 1 if run_numbers else 1

    def save_results(self, run_dir: Path, results: Dict[str, Any], metadata: RunMetadata) -> Path:
        """
        Write swaps.csv, summary.json and metadata.json.

        Args:
            run_dir: Directory from create_run_directory
            results: Output of LaunchSimulationEngine.run()
            metadata: Run metadata

        Returns:
            Path to summary.json
        """
        swaps = results.get("swaps")
        if isinstance(swaps, pd.DataFrame):
            swaps.to_csv(run_dir / "swaps.csv", index=False)

        summary_file = run_dir / "summary.json"
        with open(summary_file, "w") as f:
            json.dump(self._make_serializable(results.get("summary", {})), f, indent=2)

        with open(run_dir / "metadata.json", "w") as f:
            json.dump(self._make_serializable(asdict(metadata)), f, indent=2)

        return summary_file

    def load_summary(self, run_dir: Path) -> Optional[Dict[str, Any]]:
        summary_file = Path(run_dir) / "summary.json"
        if not summary_file.exists():
            return None
        try:
            with open(summary_file) as f:
                return json.load(f)
        except json.JSONDecodeError:
            return None

    def load_swaps(self, run_dir: Path) -> Optional[pd.DataFrame]:
        swaps_file = Path(run_dir) / "swaps.csv"
        if not swaps_file.exists():
            return None
        return pd.read_csv(swaps_file)

    def _make_serializable(self, obj: Any) -> Any:
        """Convert numpy values, enums and big integers to JSON-friendly values"""
        if isinstance(obj, pd.DataFrame):
            return obj.to_dict(orient="records")
        if isinstance(obj, dict):
            return {
                str(k.value) if hasattr(k, "value") else str(k): self._make_serializable(v)
                for k, v in obj.items()
            }
        if isinstance(obj, (list, tuple, set, frozenset)):
            return [self._make_serializable(item) for item in obj]
        if hasattr(obj, "tolist"):  # numpy arrays
            return obj.tolist()
        if hasattr(obj, "item"):  # numpy scalars
            return obj.item()
        if hasattr(obj, "value") and not isinstance(obj, (int, float, str, bool)):  # Enum
            return obj.value
        if isinstance(obj, int) and not isinstance(obj, bool) and abs(obj) >= 2 ** 53:
            # Raw token amounts overflow JSON doubles
            return str(obj)
        try:
            json.dumps(obj)
            return obj
        except (TypeError, ValueError):
            return str(obj)
