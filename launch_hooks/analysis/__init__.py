"""Results storage and charts"""

from .results import ResultsManager, RunMetadata
from .charts import LaunchChartGenerator

__all__ = ["ResultsManager", "RunMetadata", "LaunchChartGenerator"]
