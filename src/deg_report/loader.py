"""
Input loading for the count matrix and sample metadata.

Both inputs are tab-delimited tables with a header row whose first column
holds the row identifier (gene ids for the counts, sample ids for the
metadata). The count matrix columns must list the metadata samples in the
same order, since the model pairs them by position.
"""

import logging
from pathlib import Path
from typing import List, Tuple, Union

import pandas as pd

from .exceptions import DataMismatchError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _read_table(path: PathLike) -> pd.DataFrame:
    """Read a tab-delimited table indexed by its first column, kept as text."""
    header = pd.read_csv(path, sep="\t", nrows=0)
    id_column = header.columns[0]
    return pd.read_csv(path, sep="\t", index_col=0, dtype={id_column: str})


def read_count_matrix(path: PathLike) -> pd.DataFrame:
    """Read a genes x samples count matrix."""
    counts = _read_table(path)
    counts.columns = counts.columns.astype(str)
    counts.index = counts.index.astype(str)
    logger.info("Loaded count matrix %s: %d genes x %d samples", path, *counts.shape)
    return counts


def read_sample_metadata(path: PathLike) -> pd.DataFrame:
    """Read a sample metadata table (one row per sample)."""
    metadata = _read_table(path)
    metadata.index = metadata.index.astype(str)
    logger.info(
        "Loaded sample metadata %s: %d samples, columns %s",
        path,
        len(metadata),
        list(metadata.columns),
    )
    return metadata


def check_sample_alignment(counts: pd.DataFrame, metadata: pd.DataFrame) -> None:
    """
    Verify that count columns and metadata rows are the same samples in the same order.

    Raises:
        DataMismatchError: if the identifiers differ or are ordered differently
    """
    count_ids: List[str] = list(counts.columns)
    meta_ids: List[str] = list(metadata.index)
    if count_ids == meta_ids:
        return

    count_set, meta_set = set(count_ids), set(meta_ids)
    missing_in_meta = [s for s in count_ids if s not in meta_set]
    missing_in_counts = [s for s in meta_ids if s not in count_set]

    problems = []
    if missing_in_meta:
        problems.append(f"in counts but not metadata: {missing_in_meta[:10]}")
    if missing_in_counts:
        problems.append(f"in metadata but not counts: {missing_in_counts[:10]}")
    if len(count_ids) != len(meta_ids):
        problems.append(f"{len(count_ids)} count columns vs {len(meta_ids)} metadata rows")
    if not problems:
        first = next(i for i, (a, b) in enumerate(zip(count_ids, meta_ids)) if a != b)
        problems.append(
            f"same samples in a different order (position {first}: "
            f"{count_ids[first]!r} vs {meta_ids[first]!r})"
        )

    raise DataMismatchError(
        "Count matrix columns do not match metadata rows; " + "; ".join(problems)
    )


def load(count_path: PathLike, metadata_path: PathLike) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Load the count matrix and sample metadata and check they line up.

    Args:
        count_path: Tab-delimited genes x samples count matrix
        metadata_path: Tab-delimited sample metadata

    Returns:
        Tuple of (counts, metadata)

    Raises:
        DataMismatchError: if sample identifiers do not align
        OSError: if either file cannot be read
    """
    counts = read_count_matrix(count_path)
    metadata = read_sample_metadata(metadata_path)
    check_sample_alignment(counts, metadata)
    return counts, metadata
