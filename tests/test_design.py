"""Unit tests for the design builder."""

import pandas as pd
import pytest

from deg_report.design import DesignSpecification, apply_design, build_design
from deg_report.exceptions import DesignError


class TestBuildDesign:

    def test_condition_only(self, metadata_df):
        design = build_design(metadata_df, "condition", "control", "treated")

        assert design.levels == ["control", "treated"]
        assert design.terms == ["condition"]
        assert design.formula == "~condition"
        assert design.contrast == ["condition", "treated", "control"]

    def test_covariate_comes_first(self, metadata_df):
        design = build_design(metadata_df, "condition", "control", "treated", covariate="batch")

        assert design.terms == ["batch", "condition"]
        assert design.formula == "~batch + condition"

    def test_missing_condition_column(self, metadata_df):
        with pytest.raises(DesignError, match="group"):
            build_design(metadata_df, "group", "control", "treated")

    def test_missing_covariate_column(self, metadata_df):
        with pytest.raises(DesignError, match="patient"):
            build_design(metadata_df, "condition", "control", "treated", covariate="patient")

    @pytest.mark.parametrize("name", ["cell type", "batch-id", "1st_batch"])
    def test_covariate_name_must_be_formula_term(self, metadata_df, name):
        metadata = metadata_df.rename(columns={"batch": name})
        with pytest.raises(DesignError, match="model term"):
            build_design(metadata, "condition", "control", "treated", covariate=name)

    def test_condition_name_must_be_formula_term(self, metadata_df):
        metadata = metadata_df.rename(columns={"condition": "treatment group"})
        with pytest.raises(DesignError, match="treatment group"):
            build_design(metadata, "treatment group", "control", "treated")

    def test_unrecognized_condition_value_rejected(self, metadata_df):
        metadata = metadata_df.copy()
        metadata.loc["S4", "condition"] = "unknown"
        with pytest.raises(DesignError) as excinfo:
            build_design(metadata, "condition", "control", "treated")
        assert "unknown" in str(excinfo.value)
        assert "S4" in str(excinfo.value)

    def test_label_without_samples(self, metadata_df):
        metadata = metadata_df.copy()
        metadata["condition"] = "control"
        with pytest.raises(DesignError):
            build_design(metadata, "condition", "control", "treated")

    def test_same_labels_rejected(self, metadata_df):
        with pytest.raises(DesignError):
            build_design(metadata_df, "condition", "control", "control")


class TestApplyDesign:

    def test_condition_becomes_ordered_categorical(self, metadata_df):
        design = DesignSpecification("condition", "treated", "control")
        applied = apply_design(metadata_df, design)

        assert isinstance(applied["condition"].dtype, pd.CategoricalDtype)
        assert list(applied["condition"].cat.categories) == ["treated", "control"]

    def test_input_not_mutated(self, metadata_df):
        design = DesignSpecification("condition", "control", "treated")
        apply_design(metadata_df, design)
        assert not isinstance(metadata_df["condition"].dtype, pd.CategoricalDtype)
