# src/hrsip/analysis/taxonomy.py
from __future__ import annotations

from pathlib import Path

import pandas as pd

from hrsip.errors import ConfigurationError
from hrsip.utils.logger import get_logger

LOG = get_logger("taxonomy")


def read_results(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise ConfigurationError(f"results table not found: {path}")
    df = pd.read_csv(path, sep="\t", dtype={"group": str, "feature_id": str})
    missing = [c for c in ("group", "feature_id", "padj") if c not in df.columns]
    if missing:
        raise ConfigurationError(f"{path}: missing column(s) {', '.join(missing)}")
    return df


def incorporators(results: pd.DataFrame, padj_cutoff: float = 0.1) -> pd.DataFrame:
    """Rows with padj below the cutoff; NaN padj never counts."""
    return results.loc[results["padj"].fillna(1.0) < padj_cutoff]


def incorporator_summary(results: pd.DataFrame, rank: str = "Phylum", padj_cutoff: float = 0.1) -> pd.DataFrame:
    """
    Count incorporator features per group and taxonomic rank value.

    A feature counted under several sparsity thresholds is counted once per group.
    Unclassified features are reported as 'Unclassified'.
    """
    if rank not in results.columns:
        raise ConfigurationError(f"rank '{rank}' not in results; available: {', '.join(results.columns)}")
    hits = incorporators(results, padj_cutoff)
    hits = hits.drop_duplicates(["group", "feature_id"])
    summary = (hits.assign(**{rank: hits[rank].fillna("Unclassified")})
               .groupby(["group", rank], sort=False)["feature_id"].nunique()
               .rename("n_incorporators")
               .reset_index())
    summary = summary.sort_values(["group", "n_incorporators", rank], ascending=[True, False, True], kind="stable")
    LOG.info("%d incorporator(s) across %d group(s) at padj < %s",
             len(hits), summary["group"].nunique(), padj_cutoff)
    return summary.reset_index(drop=True)
