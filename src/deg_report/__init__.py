"""
deg_report - reproducible differential expression report.

Loads a count matrix and sample metadata, fits DESeq2 through PyDESeq2,
writes a ranked results table and renders an HTML report with an
interactive table and a volcano plot.

Usage:
    from deg_report import load_config, run_report

    config = load_config("params.json")
    result = run_report(config)
    print(result.summary.n_upregulated)
"""

from .config import ReportConfig, load_config
from .design import DesignSpecification, build_design
from .engine import RESULT_COLUMNS, PyDESeq2Engine, fit_differential_expression
from .exceptions import (
    ConfigError,
    DataMismatchError,
    DEGReportError,
    DesignError,
    ModelFitError,
)
from .loader import load
from .pipeline import ReportResult, run_report
from .results import format_and_persist, rank_results
from .volcano import classify_significance, volcano_figure

__version__ = "0.1.0"

__all__ = [
    "ReportConfig",
    "load_config",
    "DesignSpecification",
    "build_design",
    "RESULT_COLUMNS",
    "PyDESeq2Engine",
    "fit_differential_expression",
    "DEGReportError",
    "ConfigError",
    "DataMismatchError",
    "DesignError",
    "ModelFitError",
    "load",
    "ReportResult",
    "run_report",
    "format_and_persist",
    "rank_results",
    "classify_significance",
    "volcano_figure",
]
