"""Table loading for counts, sample metadata and taxonomy.

Supports CSV, tab-separated text and Parquet files.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import pandas as pd

from micromarker.data.dataset import MicrobiomeDataset

logger = logging.getLogger(__name__)

# Flag to track PyArrow availability
_PYARROW_AVAILABLE: Optional[bool] = None


class TableFormat(str, Enum):
    """Supported table formats."""

    CSV = "csv"
    TSV = "tsv"
    PARQUET = "parquet"

    @classmethod
    def from_path(cls, path: Path) -> TableFormat:
        """
        Infer format from path suffix.

        Raises
        ------
        ValueError
            If format cannot be inferred
        """
        suffix = Path(path).suffix.lower()
        if suffix == ".csv":
            return cls.CSV
        elif suffix in (".tsv", ".txt"):
            return cls.TSV
        elif suffix == ".parquet":
            return cls.PARQUET
        else:
            raise ValueError(
                f"Cannot infer table format from path: {path}. "
                f"Expected .csv, .tsv, .txt or .parquet."
            )


def validate_parquet_available() -> None:
    """
    Check if PyArrow is available for Parquet operations.

    Raises
    ------
    ImportError
        If PyArrow is not installed
    """
    global _PYARROW_AVAILABLE

    if _PYARROW_AVAILABLE is None:
        try:
            import pyarrow  # noqa: F401

            _PYARROW_AVAILABLE = True
        except ImportError:
            _PYARROW_AVAILABLE = False

    if not _PYARROW_AVAILABLE:
        raise ImportError(
            "PyArrow is required for Parquet support but is not installed.\n"
            "Install with: pip install micromarker[parquet] or pip install pyarrow"
        )


def load_table(path: Path, index_col: Optional[int] = 0) -> pd.DataFrame:
    """
    Load a table from a CSV, TSV or Parquet file.

    Parameters
    ----------
    path : Path
        Path to the table
    index_col : int, optional
        Column to use as row index for text formats (default: first column).
        For Parquet the stored index is used, or the first column when the
        file has no named index and ``index_col`` is set.

    Returns
    -------
    pd.DataFrame
        Loaded table

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")

    fmt = TableFormat.from_path(path)
    logger.info(f"Loading table from {path} (format: {fmt.value})")

    if fmt == TableFormat.CSV:
        return pd.read_csv(path, index_col=index_col)
    elif fmt == TableFormat.TSV:
        return pd.read_csv(path, sep="\t", index_col=index_col)

    validate_parquet_available()
    df = pd.read_parquet(path)
    if index_col is not None and isinstance(df.index, pd.RangeIndex):
        df = df.set_index(df.columns[index_col])
    return df


def load_dataset(
    counts_path: Path,
    sample_data_path: Path,
    taxonomy_path: Path,
    taxa_are_rows: bool = True,
) -> MicrobiomeDataset:
    """
    Load the three tables of a study into a MicrobiomeDataset.

    Parameters
    ----------
    counts_path : Path
        Abundance table; first column holds feature IDs (or sample IDs when
        ``taxa_are_rows`` is False)
    sample_data_path : Path
        Sample metadata; first column holds sample IDs
    taxonomy_path : Path
        Taxonomy table; first column holds feature IDs, remaining columns are
        ranks from broadest to most specific
    taxa_are_rows : bool
        Orientation of the counts table (default: features × samples)

    Returns
    -------
    MicrobiomeDataset
    """
    counts = load_table(counts_path)
    if taxa_are_rows:
        counts = counts.T

    sample_data = load_table(sample_data_path)
    tax_table = load_table(taxonomy_path)

    logger.info(
        f"Loaded {counts.shape[0]} samples, {counts.shape[1]} features, "
        f"{tax_table.shape[1]} ranks"
    )
    return MicrobiomeDataset(counts=counts, sample_data=sample_data, tax_table=tax_table)
