import pytest

from hrsip.errors import ConfigurationError
from hrsip.metadata.read import load_metadata_table, load_samples


def test_load_samples_with_types_row_and_alias(tmp_path):
    p = tmp_path / "metadata.tsv"
    p.write_text(
        "sample-id\tsubstrate\tday\n"
        "#q2:types\tcategorical\tcategorical\n"
        "S1\t12C-Con\t3\n"
        "S2\t\"13C-Glu\"\t3\n"
        "\n"
        "S3\t13C-Glu\n"
    )
    header, rows = load_metadata_table(p)
    assert header == ["#SampleID", "substrate", "day"]
    samples = load_samples(p)
    assert [s.id for s in samples] == ["S1", "S2", "S3"]
    assert samples[1].attributes == {"substrate": "13C-Glu", "day": "3"}
    assert samples[2].get("day") == ""


def test_duplicate_ids(tmp_path):
    p = tmp_path / "metadata.tsv"
    p.write_text("#SampleID\tsubstrate\nS1\ta\nS1\tb\n")
    with pytest.raises(ConfigurationError, match="duplicate"):
        load_samples(p)


def test_bad_first_column(tmp_path):
    p = tmp_path / "metadata.tsv"
    p.write_text("substrate\tday\na\t3\n")
    with pytest.raises(ConfigurationError, match="first column"):
        load_samples(p)


def test_empty_file(tmp_path):
    p = tmp_path / "metadata.tsv"
    p.write_text("\n\n")
    with pytest.raises(ConfigurationError, match="empty"):
        load_samples(p)
