import pandas as pd
import pytest

from hrsip.analysis.engine import RESULT_COLUMNS, best_sparsity_threshold, hrsip_engine
from hrsip.errors import EngineError
from hrsip.plan.types import Design

DESIGN = Design(axis="substrate", control_value="12C-Con")
WINDOWS = [(1.70, 1.73), (1.72, 1.75), (1.74, 1.77)]


def test_labeled_feature_is_detected(sip_dataset):
    res = hrsip_engine(sip_dataset, design=DESIGN, windows=WINDOWS, sparsity_thresholds=[0.0])
    assert list(res.columns) == RESULT_COLUMNS
    assert res["feature_id"].is_unique
    otu1 = res.set_index("feature_id").loc["OTU.1"]
    assert otu1["log2_fold_change"] > 2
    assert otu1["padj"] < 0.1
    assert otu1["density_min"] in (1.72, 1.74)
    unlabeled = res.set_index("feature_id").drop(index=["OTU.1"])
    assert (unlabeled["padj"] >= 0.1).all()


def test_three_sparsity_thresholds_are_all_kept(sip_dataset):
    res = hrsip_engine(sip_dataset, design=DESIGN, windows=WINDOWS, sparsity_thresholds=[0.0, 0.3, 0.6])
    assert sorted(res["sparsity_threshold"].unique()) == [0.0, 0.3, 0.6]
    sizes = res.groupby("sparsity_threshold").size()
    assert sizes.sum() == len(res)
    for thr, sub in res.groupby("sparsity_threshold"):
        assert sub["feature_id"].is_unique


def test_sparsity_threshold_prunes_rare_feature(sip_dataset):
    res = hrsip_engine(sip_dataset, design=DESIGN, windows=WINDOWS, sparsity_thresholds=[0.0, 0.5])
    at_zero = set(res.loc[res["sparsity_threshold"] == 0.0, "feature_id"])
    at_half = set(res.loc[res["sparsity_threshold"] == 0.5, "feature_id"])
    assert "OTU.sparse" in at_zero
    assert "OTU.sparse" not in at_half


def test_insufficient_replication_raises(sip_dataset):
    with pytest.raises(EngineError, match="insufficient replication"):
        hrsip_engine(sip_dataset, design=DESIGN, windows=[(1.90, 1.95)], sparsity_thresholds=[0.0])


def test_missing_density_raises(sip_dataset):
    with pytest.raises(EngineError, match="Density"):
        hrsip_engine(sip_dataset, design=DESIGN, windows=WINDOWS, sparsity_thresholds=[0.0],
                     density_col="Density")


def test_best_sparsity_threshold_prefers_most_rejections_then_lowest():
    df = pd.DataFrame({
        "group": ["g1"] * 4 + ["g2"] * 2,
        "sparsity_threshold": [0.0, 0.0, 0.1, 0.1, 0.0, 0.1],
        "padj": [0.5, 0.01, 0.01, 0.02, 0.5, 0.5],
    })
    best = best_sparsity_threshold(df, 0.1)
    assert list(best["group"]) == ["g1", "g2"]
    assert list(best["sparsity_threshold"]) == [0.1, 0.0]
    assert list(best["rejected"]) == [2, 0]
