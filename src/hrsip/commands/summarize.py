# src/hrsip/commands/summarize.py
from __future__ import annotations

from pathlib import Path

from hrsip.analysis.plots import plot_abundance_by_density, plot_l2fc
from hrsip.analysis.taxonomy import incorporator_summary, incorporators, read_results
from hrsip.commands.common import fail, load_dataset, load_params
from hrsip.errors import ConfigurationError, HrsipError
from hrsip.plan.types import Design
from hrsip.utils.logger import get_logger

LOG = get_logger("summarize")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "summarize", parents=[parent],
        help="Summarize incorporators by taxonomic rank and plot l2fc / abundance-by-density.",
    )
    p.add_argument("--results", type=Path, required=True, help="Combined results TSV from `hrsip run`.")
    p.add_argument("--rank", type=str, default="Phylum")
    p.add_argument("--padj-cutoff", dest="padj_cutoff", type=float, default=0.1)
    p.add_argument("--output", type=Path, default=None, help="Summary TSV (group, rank, n_incorporators).")
    p.add_argument("--plot", type=Path, default=None, help="l2fc strip plot (.png/.pdf).")

    # abundance-by-density plot needs the raw counts
    p.add_argument("--abundance-plot", type=Path, default=None)
    p.add_argument("--counts", type=Path, default=None)
    p.add_argument("--metadata-file", type=Path, default=None)
    p.add_argument("--params", type=Path, default=None)
    p.add_argument("--top", type=int, default=6, help="Plot the N incorporators with the largest l2fc.")
    p.set_defaults(func=run)


def run(args) -> None:
    try:
        results = read_results(args.results)
        summary = incorporator_summary(results, rank=args.rank, padj_cutoff=args.padj_cutoff)
        if args.plot:
            plot_l2fc(results, args.plot, rank=args.rank, padj_cutoff=args.padj_cutoff)
        if args.abundance_plot:
            _abundance_plot(args, results)
    except HrsipError as e:
        fail(e)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        summary.to_csv(args.output, sep="\t", index=False)
        LOG.info("Incorporator summary → %s", args.output)
    else:
        print(summary.to_string(index=False))


def _abundance_plot(args, results) -> None:
    if not (args.counts and args.metadata_file and args.params):
        raise ConfigurationError("--abundance-plot requires --counts, --metadata-file and --params")
    params = load_params(args.params)
    dataset, _ = load_dataset(args.counts, args.metadata_file)
    hits = incorporators(results, args.padj_cutoff)
    top = (hits.sort_values("log2_fold_change", ascending=False)
           .drop_duplicates("feature_id")["feature_id"].head(args.top).tolist())
    if not top:
        LOG.warning("No incorporators at padj < %s; skipping abundance plot", args.padj_cutoff)
        return
    design = Design(axis=params.treatment.name, control_value=params.treatment.control_value)
    plot_abundance_by_density(dataset, top, design, args.abundance_plot, density_col=params.density_col)
