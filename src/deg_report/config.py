"""Report configuration.

The parameter block of a report run: input files, the comparison to make,
significance thresholds and output options. Values come from (in order of
increasing precedence) dataclass defaults, environment variables loaded from
``.env``, an optional JSON params file, and explicit overrides such as CLI
flags.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import load_dotenv

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

OUTPUT_DIR_ENV = "DEG_REPORT_OUTPUT_DIR"
DEFAULT_OUTPUT_DIR = "results"


@dataclass
class ReportConfig:
    """Parameters for a single differential expression report."""

    data_file: Union[str, Path]
    metadata_file: Union[str, Path]
    control_group: str
    treatment_group: str
    condition_column: str = "condition"
    covariate: Optional[str] = None

    # Significance thresholds
    alpha: float = 0.05
    lfc_threshold: float = 0.0

    output_dir: Union[str, Path] = DEFAULT_OUTPUT_DIR
    plot_volcano: bool = True
    top_genes: int = 20

    # Genes with fewer total counts across all samples are not tested.
    # 0 disables the pre-filter.
    min_total_count: int = 0

    table_page_length: int = 100
    title: str = "Differential expression report"

    def __post_init__(self):
        """Validate configuration."""
        self.data_file = Path(self.data_file)
        self.metadata_file = Path(self.metadata_file)
        self.output_dir = Path(self.output_dir)

        for name in ("control_group", "treatment_group", "condition_column"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{name} must be a non-empty string")
        if self.control_group == self.treatment_group:
            raise ConfigError(
                f"control_group and treatment_group must differ (both {self.control_group!r})"
            )
        if self.covariate is not None:
            if not isinstance(self.covariate, str):
                raise ConfigError(f"covariate must be a column name, got {self.covariate!r}")
            if not self.covariate.strip():
                self.covariate = None
            elif self.covariate == self.condition_column:
                raise ConfigError("covariate must not be the condition column")

        try:
            self.alpha = float(self.alpha)
            self.lfc_threshold = float(self.lfc_threshold)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"alpha and lfc_threshold must be numbers: {exc}") from exc
        if not 0.0 < self.alpha <= 1.0:
            raise ConfigError(f"alpha must be in (0, 1], got {self.alpha}")
        if self.lfc_threshold < 0:
            raise ConfigError(f"lfc_threshold must be >= 0, got {self.lfc_threshold}")

        for name, minimum in (("top_genes", 0), ("min_total_count", 0), ("table_page_length", 1)):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                raise ConfigError(f"{name} must be an integer >= {minimum}, got {value!r}")

        if not isinstance(self.plot_volcano, bool):
            raise ConfigError(f"plot_volcano must be a boolean, got {self.plot_volcano!r}")

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> "ReportConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(params) - known)
        if unknown:
            raise ConfigError(f"Unknown config option(s): {', '.join(unknown)}")
        try:
            return cls(**params)
        except TypeError as exc:
            # missing required options
            raise ConfigError(str(exc)) from exc

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        d = asdict(self)
        for key in ("data_file", "metadata_file", "output_dir"):
            d[key] = str(d[key])
        return d

    @property
    def results_path(self) -> Path:
        return Path(self.output_dir) / "DEG_results.csv"

    @property
    def report_path(self) -> Path:
        return Path(self.output_dir) / "DEG_report.html"

    @property
    def summary_path(self) -> Path:
        return Path(self.output_dir) / "DEG_summary.json"


def read_params_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON params file into a dict."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        try:
            params = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Params file {path} is not valid JSON: {exc}") from exc
    if not isinstance(params, dict):
        raise ConfigError(f"Params file {path} must contain a JSON object")
    return params


def load_config(
    params_file: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> ReportConfig:
    """
    Load .env and build a validated ReportConfig.

    Args:
        params_file: Optional JSON file with config options
        **overrides: Options that take precedence over the params file.
            ``None`` values are ignored so unset CLI flags fall through.

    Returns:
        Validated ReportConfig
    """
    load_dotenv()

    params: Dict[str, Any] = {}
    env_output_dir = os.environ.get(OUTPUT_DIR_ENV)
    if env_output_dir:
        params["output_dir"] = env_output_dir

    if params_file is not None:
        logger.debug("Reading params from %s", params_file)
        params.update(read_params_file(params_file))

    params.update({k: v for k, v in overrides.items() if v is not None})
    return ReportConfig.from_dict(params)
