# src/hrsip/commands/common.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable, List, NoReturn, Optional, Tuple

from hrsip.analysis.dataset import SipDataset, build_dataset, read_count_table, read_taxonomy
from hrsip.config.io import apply_cli_overrides, load_params_typed
from hrsip.config.schema import Params
from hrsip.errors import ConfigurationError, HrsipError, ValidationError
from hrsip.metadata.read import load_samples
from hrsip.plan.build import build_comparison_groups
from hrsip.plan.types import Sample
from hrsip.utils.logger import get_logger

LOG = get_logger("commands")

EXIT_CONFIG = 2
EXIT_ENGINE = 1


def fail(err: HrsipError | str, code: int = EXIT_CONFIG) -> NoReturn:
    """Log and print every problem carried by the error, then exit."""
    problems: List[str]
    if isinstance(err, ValidationError):
        problems = [f"{label}: {why}" for label, why in err.problems.items()]
    elif isinstance(err, ConfigurationError):
        problems = err.problems
    else:
        problems = [str(err)]
    for p in problems:
        LOG.error(p)
        print(f"[fail] {p}", file=sys.stderr)
    sys.exit(code)


def load_params(path: Path, args=None, overrides: Iterable[str] = ()) -> Params:
    params = load_params_typed(path)
    if args is not None:
        params = apply_cli_overrides(params, args, overrides)
    LOG.debug("Params: %r", params)
    return params


def build_groups(samples: List[Sample], params: Params):
    return build_comparison_groups(
        samples,
        treatment_axis=params.treatment.name,
        control_value=params.treatment.control_value,
        treatment_values=params.treatment.treatment_values,
        stratify=params.stratify,
        strata_levels=params.strata_levels,
    )


def load_dataset(counts: Path, metadata_file: Path, taxonomy: Optional[Path] = None) -> Tuple[SipDataset, List[Sample]]:
    samples = load_samples(metadata_file)
    tax = read_taxonomy(taxonomy) if taxonomy else None
    dataset = build_dataset(read_count_table(counts), samples, tax)
    return dataset, list(dataset.samples)
