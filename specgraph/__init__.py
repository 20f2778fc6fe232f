"""specgraph - reference-graph validation for API specification trees."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("specgraph")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed

from specgraph.diff_engine import IncrementalValidator
from specgraph.findings import Finding, FindingCode, FindingMap, Severity
from specgraph.models import SpecKind, Specification
from specgraph.pipeline import Pipeline
from specgraph.walker import RunResult, TraversalState, Walker

__all__ = [
    "__version__",
    "Finding",
    "FindingCode",
    "FindingMap",
    "IncrementalValidator",
    "Pipeline",
    "RunResult",
    "Severity",
    "SpecKind",
    "Specification",
    "TraversalState",
    "Walker",
]
