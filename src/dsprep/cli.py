# src/dsprep/cli.py

from __future__ import annotations

import argparse
from pathlib import Path
import sys

import pandas as pd

from .config import InputFilesConfig, PreprocessConfig
from .data_models import PreprocessedBundle
from .io_handlers import load_input_tables, save_bundle, toy_files_config
from .logging_utils import setup_logging
from .missingness import missingness_curve
from .pipeline import build_aligned_matrices, run_pipeline, run_toy_pipeline


def _add_input_arguments(parser: argparse.ArgumentParser, required: bool = True) -> None:
    # Required file paths
    parser.add_argument(
        "--screen-file",
        type=str,
        required=required,
        help="Tab-delimited screen results (cell line id, compound id, value).",
    )
    parser.add_argument(
        "--cell-lines-file",
        type=str,
        required=required,
        help="Tab-delimited cell-line metadata (id + canonical name).",
    )
    parser.add_argument(
        "--compounds-file",
        type=str,
        required=required,
        help="Tab-delimited compound metadata (id + canonical name).",
    )
    parser.add_argument(
        "--targets-file",
        type=str,
        required=required,
        help="Target-affinity table (pickled DataFrame or tab-delimited).",
    )
    parser.add_argument(
        "--cell-line-annotation-file",
        type=str,
        default=None,
        help="Optional tab-delimited DepMap id -> cell-line name annotation.",
    )
    parser.add_argument(
        "--mutations-file",
        type=str,
        default=None,
        help="Optional comma-delimited mutation calls (needs --cell-line-annotation-file).",
    )
    parser.add_argument(
        "--synonyms-file",
        type=str,
        default=None,
        help="Optional CSV [source, target] of extra drug name overrides.",
    )

    # Optional overrides for column names
    parser.add_argument(
        "--screen-value-col",
        type=str,
        default="cpd_avg_pv",
        help="Column with the measured viability in the screen file (default: cpd_avg_pv).",
    )
    parser.add_argument(
        "--cell-line-id-col",
        type=str,
        default="master_ccl_id",
        help="Cell-line id column in screen and cell-line files (default: master_ccl_id).",
    )
    parser.add_argument(
        "--cell-line-name-col",
        type=str,
        default="ccl_name",
        help="Canonical name column in the cell-line file (default: ccl_name).",
    )
    parser.add_argument(
        "--compound-id-col",
        type=str,
        default="master_cpd_id",
        help="Compound id column in screen and compound files (default: master_cpd_id).",
    )
    parser.add_argument(
        "--compound-name-col",
        type=str,
        default="cpd_name",
        help="Canonical name column in the compound file (default: cpd_name).",
    )


def _add_log_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional log file in addition to stderr.",
    )


def _add_parameter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--confidence-level",
        type=str,
        default="High",
        help="Target classification used for the affinity matrix (default: High).",
    )
    parser.add_argument(
        "--correlation-threshold",
        type=float,
        default=0.9,
        help="Absolute correlation that merges targets (default: 0.9).",
    )
    parser.add_argument(
        "--max-threshold",
        type=int,
        default=None,
        help="Largest cutoff evaluated in the missingness curve (default: number of drugs).",
    )


def add_toy_subcommand(subparsers: argparse._SubParsersAction) -> None:
    parser_toy = subparsers.add_parser(
        "toy",
        help="Run the pipeline on the built-in toy dataset.",
        description="Run the preprocessing pipeline on the toy tables.",
    )

    parser_toy.add_argument(
        "--toy-data-dir",
        type=str,
        default="data/toy",
        help="Directory containing toy input files (default: data/toy).",
    )
    parser_toy.add_argument(
        "--cutoff",
        type=int,
        default=2,
        help="Maximum missing drugs per cell line (default: 2).",
    )
    parser_toy.add_argument(
        "--n-estimators",
        type=int,
        default=20,
        help="Trees per random forest in the imputer (default: 20).",
    )
    parser_toy.add_argument(
        "--output",
        type=str,
        default=None,
        help="If provided, write the output bundle to this file.",
    )
    _add_log_argument(parser_toy)

    parser_toy.set_defaults(func=run_toy_cli)


def add_run_subcommand(subparsers: argparse._SubParsersAction) -> None:
    parser_run = subparsers.add_parser(
        "run",
        help="Run the pipeline on user-provided files.",
        description="Preprocess a drug-sensitivity screen into aligned matrices.",
    )
    _add_input_arguments(parser_run)
    _add_parameter_arguments(parser_run)

    parser_run.add_argument(
        "--cutoff",
        type=int,
        default=15,
        help="Maximum missing drugs per cell line; inspect 'curve' first (default: 15).",
    )
    parser_run.add_argument(
        "--n-estimators",
        type=int,
        default=100,
        help="Trees per random forest in the imputer (default: 100).",
    )
    parser_run.add_argument(
        "--max-iter",
        type=int,
        default=10,
        help="Maximum imputation rounds (default: 10).",
    )
    parser_run.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed of the imputer (default: 0).",
    )
    parser_run.add_argument(
        "--n-jobs",
        type=int,
        default=None,
        help="Parallel jobs for the random forests (default: None, one job).",
    )
    parser_run.add_argument(
        "--output",
        type=str,
        required=True,
        help="Path of the output bundle (joblib).",
    )
    _add_log_argument(parser_run)

    parser_run.set_defaults(func=run_cli)


def add_curve_subcommand(subparsers: argparse._SubParsersAction) -> None:
    parser_curve = subparsers.add_parser(
        "curve",
        help="Print the missingness curve used to choose --cutoff.",
        description="Build the response matrix and report retained cell lines per cutoff.",
    )
    parser_curve.add_argument(
        "--toy",
        action="store_true",
        help="Use the toy dataset in data/toy instead of explicit files.",
    )
    parser_curve.add_argument(
        "--toy-data-dir",
        type=str,
        default="data/toy",
        help="Directory containing toy input files (default: data/toy).",
    )
    # Inputs are only required without --toy, checked in run_curve_cli.
    _add_input_arguments(parser_curve, required=False)
    _add_parameter_arguments(parser_curve)
    parser_curve.add_argument(
        "--output-csv",
        type=str,
        default=None,
        help="If provided, save the curve to this CSV file.",
    )
    _add_log_argument(parser_curve)

    parser_curve.set_defaults(func=run_curve_cli)


def _files_config_from_args(args: argparse.Namespace) -> InputFilesConfig:
    missing = [
        name
        for name in ("screen_file", "cell_lines_file", "compounds_file", "targets_file")
        if getattr(args, name) is None
    ]
    if missing:
        flags = ", ".join("--" + m.replace("_", "-") for m in missing)
        raise SystemExit(f"Missing required input files: {flags}")

    def _opt(value: str | None) -> Path | None:
        return Path(value) if value is not None else None

    return InputFilesConfig(
        screen_file=Path(args.screen_file),
        cell_lines_file=Path(args.cell_lines_file),
        compounds_file=Path(args.compounds_file),
        targets_file=Path(args.targets_file),
        cell_line_annotation_file=_opt(args.cell_line_annotation_file),
        mutations_file=_opt(args.mutations_file),
        synonyms_file=_opt(args.synonyms_file),
        screen_cell_line_id_col=args.cell_line_id_col,
        screen_compound_id_col=args.compound_id_col,
        screen_value_col=args.screen_value_col,
        cell_line_id_col=args.cell_line_id_col,
        cell_line_name_col=args.cell_line_name_col,
        compound_id_col=args.compound_id_col,
        compound_name_col=args.compound_name_col,
    )


def _check_files_exist(cfg: InputFilesConfig) -> None:
    paths = [
        cfg.screen_file,
        cfg.cell_lines_file,
        cfg.compounds_file,
        cfg.targets_file,
        cfg.cell_line_annotation_file,
        cfg.mutations_file,
        cfg.synonyms_file,
    ]
    for path in paths:
        if path is not None and not path.exists():
            raise SystemExit(f"Input file does not exist: {path}")


def run_toy_cli(args: argparse.Namespace) -> None:
    setup_logging(Path(args.log_file) if args.log_file is not None else None)

    data_dir = Path(args.toy_data_dir)
    if not data_dir.exists():
        raise SystemExit(f"Toy data directory does not exist: {data_dir}")

    params = PreprocessConfig(missing_cutoff=args.cutoff, n_estimators=args.n_estimators)
    bundle = run_toy_pipeline(data_dir=data_dir, params=params)

    _print_and_maybe_save(bundle, args.output)


def run_cli(args: argparse.Namespace) -> None:
    setup_logging(Path(args.log_file) if args.log_file is not None else None)

    cfg = _files_config_from_args(args)
    _check_files_exist(cfg)

    params = PreprocessConfig(
        confidence_level=args.confidence_level,
        correlation_threshold=args.correlation_threshold,
        missing_cutoff=args.cutoff,
        max_threshold=args.max_threshold,
        n_estimators=args.n_estimators,
        max_iter=args.max_iter,
        random_state=args.seed,
        n_jobs=args.n_jobs,
    )

    bundle = run_pipeline(cfg=cfg, params=params)
    _print_and_maybe_save(bundle, args.output)


def run_curve_cli(args: argparse.Namespace) -> None:
    setup_logging(Path(args.log_file) if args.log_file is not None else None)

    if args.toy:
        data_dir = Path(args.toy_data_dir)
        if not data_dir.exists():
            raise SystemExit(f"Toy data directory does not exist: {data_dir}")
        cfg = toy_files_config(data_dir)
    else:
        cfg = _files_config_from_args(args)
    _check_files_exist(cfg)

    params = PreprocessConfig(
        confidence_level=args.confidence_level,
        correlation_threshold=args.correlation_threshold,
        max_threshold=args.max_threshold,
    )
    tables = load_input_tables(cfg)
    _, _, response = build_aligned_matrices(tables, cfg, params)
    curve = missingness_curve(response, max_threshold=params.max_threshold)

    print(f"\nRetained cell lines per missingness cutoff ({response.shape[0]} drugs, "
          f"{response.shape[1]} cell lines):\n")
    print(curve.to_frame().to_string())

    if args.output_csv is not None:
        out_path = Path(args.output_csv)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        curve.to_frame().to_csv(out_path)
        print(f"\nCurve saved to: {out_path.resolve()}")


def _print_and_maybe_save(bundle: PreprocessedBundle, output: str | None) -> None:
    meta = bundle.affinity_metadata
    report = bundle.missingness

    print("\nPreprocessing summary:\n")
    summary = pd.Series(
        {
            "drugs": len(bundle.drugs),
            "exact name matches": meta.get("n_exact_matches"),
            "synonyms version": meta.get("synonyms_version"),
            "targets kept": bundle.affinity.shape[1],
            "targets merged away": len(meta.get("dropped_targets", [])),
            "missingness cutoff": report.cutoff,
            "cell lines kept": len(report.retained),
            "cell lines dropped": len(report.dropped),
        }
    )
    print(summary.to_string())

    if output is not None:
        out_path = save_bundle(bundle, Path(output))
        print(f"\nBundle saved to: {out_path.resolve()}")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Drug-sensitivity screen preprocessing (DSPrep)",
    )

    subparsers = parser.add_subparsers(
        title="subcommands",
        dest="subcommand",
        required=True,
    )

    add_toy_subcommand(subparsers)
    add_run_subcommand(subparsers)
    add_curve_subcommand(subparsers)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    if not hasattr(args, "func"):
        raise SystemExit("No subcommand specified. Use 'toy', 'run' or 'curve'.")
    args.func(args)


if __name__ == "__main__":
    main(sys.argv[1:])
