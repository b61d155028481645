import matplotlib
matplotlib.use("Agg")
import pandas as pd
import pytest

from hrsip.analysis.plots import abundance_by_density, plot_abundance_by_density, plot_l2fc
from hrsip.analysis.taxonomy import incorporator_summary, read_results
from hrsip.errors import ConfigurationError
from hrsip.plan.types import Design


@pytest.fixture
def results():
    return pd.DataFrame({
        "group": ["g1", "g1", "g1", "g1", "g2", "g2"],
        "feature_id": ["a", "a", "b", "c", "a", "d"],
        "sparsity_threshold": [0.0, 0.1, 0.0, 0.0, 0.0, 0.0],
        "log2_fold_change": [3.0, 2.5, 2.0, -1.0, 1.5, 0.2],
        "padj": [0.01, 0.02, 0.05, 0.9, 0.03, None],
        "Phylum": ["Firmicutes", "Firmicutes", None, "Firmicutes", "Firmicutes", "Actinobacteria"],
    })


def test_incorporator_summary_counts_features_once(results):
    summary = incorporator_summary(results, rank="Phylum", padj_cutoff=0.1)
    rows = {(r.group, r.Phylum): r.n_incorporators for r in summary.itertuples()}
    assert rows == {("g1", "Firmicutes"): 1, ("g1", "Unclassified"): 1, ("g2", "Firmicutes"): 1}


def test_unknown_rank(results):
    with pytest.raises(ConfigurationError, match="Genus"):
        incorporator_summary(results, rank="Genus")


def test_read_results_requires_columns(tmp_path, results):
    p = tmp_path / "r.tsv"
    results.drop(columns=["padj"]).to_csv(p, sep="\t", index=False)
    with pytest.raises(ConfigurationError, match="padj"):
        read_results(p)


def test_plot_l2fc_writes_file(tmp_path, results):
    out = plot_l2fc(results, tmp_path / "plots" / "l2fc.png")
    assert out.exists() and out.stat().st_size > 0


def test_abundance_by_density(tmp_path, sip_dataset):
    design = Design(axis="substrate", control_value="12C-Con")
    long = abundance_by_density(sip_dataset, ["OTU.1"], design)
    assert set(long["side"]) == {"12C-Con", "13C-Glu"}
    assert len(long) == len(sip_dataset.sample_ids)
    heavy_trt = long[(long["side"] == "13C-Glu") & (long["density"] >= 1.72)]["rel_abundance"].mean()
    heavy_ctl = long[(long["side"] == "12C-Con") & (long["density"] >= 1.72)]["rel_abundance"].mean()
    assert heavy_trt > heavy_ctl
    out = plot_abundance_by_density(sip_dataset, ["OTU.1", "OTU.2"], design, tmp_path / "abund.png")
    assert out.exists()
    with pytest.raises(ConfigurationError):
        abundance_by_density(sip_dataset, ["nope"], design)
