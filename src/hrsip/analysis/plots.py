# src/hrsip/analysis/plots.py
from __future__ import annotations

from pathlib import Path
from typing import Sequence

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from hrsip.analysis.dataset import SipDataset
from hrsip.errors import ConfigurationError
from hrsip.plan.types import Design
from hrsip.utils.logger import get_logger

LOG = get_logger("plots")


def plot_l2fc(results: pd.DataFrame, path: Path, rank: str = "Phylum", padj_cutoff: float = 0.1) -> Path:
    """
    Strip plot of log2 fold change per taxon (rank), one panel per comparison group,
    incorporators highlighted.
    """
    if rank not in results.columns:
        raise ConfigurationError(f"rank '{rank}' not in results")
    df = results.copy()
    df[rank] = df[rank].fillna("Unclassified")
    df["incorporator"] = df["padj"].fillna(1.0) < padj_cutoff

    g = sns.catplot(
        data=df, x=rank, y="log2_fold_change", hue="incorporator", col="group",
        kind="strip", col_wrap=min(3, df["group"].nunique() or 1), height=4, aspect=1.3,
        palette={False: "lightgrey", True: "firebrick"}, jitter=0.25, sharex=False,
    )
    g.set_titles("{col_name}")
    for ax in g.axes.flat:
        ax.axhline(0, color="black", linewidth=0.5)
        ax.tick_params(axis="x", rotation=90)
    g.set_axis_labels(rank, "log2 fold change")

    path.parent.mkdir(parents=True, exist_ok=True)
    g.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(g.figure)
    LOG.info("Saved l2fc plot → %s", path)
    return path


def abundance_by_density(dataset: SipDataset, features: Sequence[str], design: Design,
                         density_col: str = "Buoyant_density") -> pd.DataFrame:
    """Long table of relative abundance per (feature, fraction) with density and side."""
    missing = [f for f in features if f not in dataset.counts.index]
    if missing:
        raise ConfigurationError(f"feature(s) not in count table: {', '.join(missing)}")
    rel = dataset.counts.div(dataset.counts.sum(axis=0).replace(0, float("nan")), axis=1).fillna(0.0)
    meta = dataset.sample_table()
    long = (rel.loc[list(features)]
            .rename_axis("feature_id").reset_index()
            .melt(id_vars="feature_id", var_name="sample_id", value_name="rel_abundance"))
    long["density"] = pd.to_numeric(long["sample_id"].map(meta[density_col]), errors="coerce")
    long["side"] = long["sample_id"].map(meta[design.axis])
    return long.sort_values(["feature_id", "side", "density"]).reset_index(drop=True)


def plot_abundance_by_density(dataset: SipDataset, features: Sequence[str], design: Design, path: Path,
                              density_col: str = "Buoyant_density") -> Path:
    long = abundance_by_density(dataset, features, design, density_col)
    g = sns.relplot(
        data=long, x="density", y="rel_abundance", hue="side", col="feature_id",
        kind="line", marker="o", col_wrap=min(3, len(features) or 1), height=3.5,
        facet_kws={"sharey": False},
    )
    g.set_titles("{col_name}")
    g.set_axis_labels("Buoyant density (g/ml)", "Relative abundance")
    path.parent.mkdir(parents=True, exist_ok=True)
    g.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(g.figure)
    LOG.info("Saved abundance plot (%d features) → %s", len(features), path)
    return path
