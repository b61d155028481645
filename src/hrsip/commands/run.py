# src/hrsip/commands/run.py
from __future__ import annotations

import sys
from pathlib import Path

from hrsip.analysis.dispatch import run_from_params, write_results
from hrsip.analysis.engine import best_sparsity_threshold
from hrsip.commands.common import EXIT_CONFIG, EXIT_ENGINE, build_groups, fail, load_dataset, load_params
from hrsip.errors import ConfigurationError, DispatchError, HrsipError, ValidationError
from hrsip.utils.logger import get_logger

LOG = get_logger("run")

_OVERRIDES = ("workers", "executor", "padj_cutoff")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "run", parents=[parent],
        help="Subset samples into comparison groups, run MW-HR-SIP per group, and write the combined TSV.",
    )
    p.add_argument("--counts", type=Path, required=True, help="Feature x sample count TSV.")
    p.add_argument("--metadata-file", type=Path, required=True)
    p.add_argument("--params", type=Path, required=True)
    p.add_argument("--taxonomy", type=Path, default=None, help="Optional taxonomy TSV (Taxon column or rank columns).")
    p.add_argument("--output", type=Path, required=True, help="Combined results TSV.")
    p.add_argument("--workers", type=int, default=None, help="Override params.workers.")
    p.add_argument("--executor", choices=("process", "thread"), default=None)
    p.add_argument("--padj-cutoff", dest="padj_cutoff", type=float, default=None)
    p.add_argument("--fail-fast", action="store_true", help="Abort on the first group whose engine run fails.")
    p.set_defaults(func=run)


def run(args) -> None:
    try:
        params = load_params(args.params, args, _OVERRIDES)
        dataset, samples = load_dataset(args.counts, args.metadata_file, args.taxonomy)
        groups = build_groups(samples, params)
        outcome = run_from_params(groups, dataset, params, fail_fast=args.fail_fast)
    except HrsipError as e:
        fail(e, EXIT_CONFIG if isinstance(e, (ConfigurationError, ValidationError)) else EXIT_ENGINE)

    write_results(outcome.results, args.output)
    if not outcome.results.empty:
        for _, row in best_sparsity_threshold(outcome.results, params.padj_cutoff).iterrows():
            LOG.info("%s: best sparsity threshold %s (%d rejected)",
                     row["group"], row["sparsity_threshold"], int(row["rejected"]))

    if not outcome.ok:
        err = DispatchError(outcome.errors)
        for e in outcome.errors.values():
            print(f"[fail] {e}", file=sys.stderr)
        LOG.error("%s", err)
        sys.exit(EXIT_ENGINE)
    print(f"[ok] {len(groups)} group(s) → {args.output}")
