"""CLI commands for two-group statistical tests."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from micromarker.errors import MicromarkerError

logger = logging.getLogger(__name__)

stats_app = typer.Typer(
    name="stats",
    help="Differential abundance tests.",
    add_completion=False,
)


@stats_app.command("two-groups")
def two_groups_cmd(
    counts: Path = typer.Option(..., "--counts", help="Abundance table (.csv, .tsv, .parquet)"),
    sample_data: Path = typer.Option(..., "--sample-data", help="Sample metadata table"),
    taxonomy: Path = typer.Option(..., "--taxonomy", help="Taxonomy table (ranks as columns)"),
    group: str = typer.Option(..., "--group", help="Sample metadata field with two groups"),
    rank_name: str = typer.Option(..., "--rank", help="Taxonomic rank to compare"),
    out: Path = typer.Option(Path("derived/markers.csv"), "--out", help="Output CSV for markers"),
    method: str = typer.Option("welch.test", "--method", help="welch.test, t.test or white.test"),
    p_adjust: str = typer.Option("none", "--p-adjust", help="none, fdr, bonferroni, holm, hochberg, hommel, BH, BY"),
    p_value_cutoff: float = typer.Option(0.05, "--p-value-cutoff", help="Corrected p-value cutoff"),
    diff_mean_cutoff: Optional[float] = typer.Option(None, "--diff-mean-cutoff", help="Minimum |diff_mean| (percent)"),
    ratio_cutoff: Optional[float] = typer.Option(None, "--ratio-cutoff", help="Ratio of proportions cutoff"),
    conf_level: float = typer.Option(0.95, "--conf-level", help="Confidence level"),
    nperm: int = typer.Option(1000, "--nperm", help="Permutations for white.test"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for white.test"),
    n_jobs: int = typer.Option(1, "--n-jobs", help="Parallel bootstrap jobs"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Time budget in seconds"),
    samples_as_rows: bool = typer.Option(
        False, "--samples-as-rows", help="Counts table has samples as rows instead of features"
    ),
):
    """
    Find features differing between two groups of samples.

    Examples:
        micromarker stats two-groups \\
            --counts otu.csv --sample-data meta.csv --taxonomy tax.csv \\
            --group Enterotype --rank Genus --method white.test --p-adjust fdr
    """
    from micromarker.data import load_dataset
    from micromarker.stats import api

    try:
        dataset = load_dataset(counts, sample_data, taxonomy, taxa_are_rows=not samples_as_rows)
        typer.echo(f"Testing {dataset.n_features} features across {dataset.n_samples} samples...")

        marker = api.test_two_groups(
            dataset,
            group=group,
            rank_name=rank_name,
            method=method,
            p_adjust=p_adjust,
            p_value_cutoff=p_value_cutoff,
            diff_mean_cutoff=diff_mean_cutoff,
            ratio_proportion_cutoff=ratio_cutoff,
            conf_level=conf_level,
            nperm=nperm,
            random_state=seed,
            n_jobs=n_jobs,
            timeout=timeout,
        )
        path = marker.to_csv(out)
    except (MicromarkerError, FileNotFoundError, ValueError) as e:
        typer.secho(f"\n✗ Analysis failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho("\n✓ Analysis complete!", fg=typer.colors.GREEN)
    typer.echo(f"  Markers: {marker.n_markers}")
    typer.echo(f"  Marker table: {path}")
