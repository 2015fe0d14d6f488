"""
Dataset container and table loading.

Example usage:
    from micromarker.data import load_dataset

    dataset = load_dataset(
        Path("otu_table.csv"),
        Path("sample_data.csv"),
        Path("taxonomy.csv"),
    )
    genus = dataset.agglomerate("Genus")
"""

from micromarker.data.dataset import MicrobiomeDataset
from micromarker.data.loaders import (
    TableFormat,
    load_table,
    load_dataset,
    validate_parquet_available,
)

__all__ = [
    "MicrobiomeDataset",
    "TableFormat",
    "load_table",
    "load_dataset",
    "validate_parquet_available",
]
