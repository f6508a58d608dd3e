"""Compile a client library against a new version of one of its dependencies
and collect the resulting compilation errors as structured diagnostics."""

__version__ = "1.0.0"

from .coordinate import ArtifactCoordinate  # noqa: E402
from .diagnostics import CompilationDiagnostic, DiagnosticExtractor, extract_diagnostics  # noqa: E402
from .pipeline import CompatibilityExperiment, ExperimentResult  # noqa: E402

__all__ = [
    "ArtifactCoordinate",
    "CompatibilityExperiment",
    "CompilationDiagnostic",
    "DiagnosticExtractor",
    "ExperimentResult",
    "extract_diagnostics",
    "__version__",
]
