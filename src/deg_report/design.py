"""Model design: the two-level condition factor and the design formula."""

import logging
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd

from .exceptions import DesignError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DesignSpecification:
    """
    Condition factor plus an optional additive covariate.

    Levels are ordered [control, treatment], so a positive log2 fold change
    means higher expression in the treatment group.
    """

    condition_column: str
    control_level: str
    treatment_level: str
    covariate: Optional[str] = None

    @property
    def levels(self) -> List[str]:
        return [self.control_level, self.treatment_level]

    @property
    def terms(self) -> List[str]:
        """Model terms, covariate first."""
        if self.covariate:
            return [self.covariate, self.condition_column]
        return [self.condition_column]

    @property
    def formula(self) -> str:
        return "~" + " + ".join(self.terms)

    @property
    def contrast(self) -> List[str]:
        """Contrast in DESeq2 form: [factor, tested level, reference level]."""
        return [self.condition_column, self.treatment_level, self.control_level]


def build_design(
    metadata: pd.DataFrame,
    condition_column: str,
    control_label: str,
    treatment_label: str,
    covariate: Optional[str] = None,
) -> DesignSpecification:
    """
    Build the design for a control vs treatment comparison.

    Samples whose condition is neither label are rejected rather than
    dropped, since silently shrinking the sample set changes the model.

    Raises:
        DesignError: if a column is missing or is not a valid identifier,
            the labels are equal, or a sample has an unrecognized condition value
    """
    if condition_column not in metadata.columns:
        raise DesignError(
            f"Condition column {condition_column!r} not in metadata columns {list(metadata.columns)}"
        )
    if covariate is not None and covariate not in metadata.columns:
        raise DesignError(
            f"Covariate column {covariate!r} not in metadata columns {list(metadata.columns)}"
        )
    for column in (condition_column, covariate):
        # terms go into the formula unquoted
        if column is not None and not column.isidentifier():
            raise DesignError(
                f"Column name {column!r} cannot be used as a model term; "
                "rename it to letters, digits and underscores"
            )
    if control_label == treatment_label:
        raise DesignError(f"Control and treatment labels are both {control_label!r}")

    values = metadata[condition_column].astype(str)
    unexpected = sorted(set(values) - {control_label, treatment_label})
    if unexpected:
        bad_samples = list(metadata.index[~values.isin([control_label, treatment_label])])
        raise DesignError(
            f"Column {condition_column!r} has values other than "
            f"{control_label!r}/{treatment_label!r}: {unexpected} "
            f"(samples {bad_samples[:10]})"
        )
    for label in (control_label, treatment_label):
        if not (values == label).any():
            raise DesignError(f"No samples with {condition_column} == {label!r}")

    design = DesignSpecification(
        condition_column=condition_column,
        control_level=control_label,
        treatment_level=treatment_label,
        covariate=covariate,
    )
    logger.info("Design formula: %s (levels %s)", design.formula, design.levels)
    return design


def apply_design(metadata: pd.DataFrame, design: DesignSpecification) -> pd.DataFrame:
    """Return a copy of the metadata with the condition as an ordered categorical."""
    metadata = metadata.copy()
    metadata[design.condition_column] = pd.Categorical(
        metadata[design.condition_column].astype(str),
        categories=design.levels,
    )
    return metadata
