#!/usr/bin/env python3
"""iPsychCNV evaluation and plotting tools - Main Entry Point."""

import argparse
import logging
from pathlib import Path
from typing import Optional
import sys
import yaml

from ipsychcnv.cnv.calls import load_cnv_table, records_from_dataframe
from ipsychcnv.cnv.evaluation import MockEvaluator
from ipsychcnv.genomics.intensity import IntensityReader, list_intensity_files
from ipsychcnv.visualization.plots import CNVPlotter
from ipsychcnv.visualization.stack import StackPlotter


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure logging."""
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers
    )


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def build_reader(args: argparse.Namespace) -> IntensityReader:
    """Create the intensity reader from command line options."""
    lcr = None
    if args.lcr:
        with open(args.lcr) as f:
            lcr = [line.strip() for line in f if line.strip()]
    return IntensityReader(skip=args.skip, snp_list=args.snp_list, lcr=lcr)


def run_evaluation(
    mock_path: Path,
    predicted_path: Path,
    output_dir: Path,
    config: dict
) -> None:
    """Evaluate predicted CNVs against mock CNVs."""
    logger = logging.getLogger(__name__)
    logger.info(f"Evaluating {predicted_path} against {mock_path}")

    eval_config = config.get("evaluation", {})
    evaluator = MockEvaluator(
        min_overlap=eval_config.get("min_overlap", 80.0),
        max_overlap=eval_config.get("max_overlap", 120.0),
        normal_copy_number=eval_config.get("normal_copy_number", 2)
    )

    mock_df = load_cnv_table(mock_path)
    results = evaluator.evaluate(
        records_from_dataframe(mock_df, require_label=True, table="mock CNVs"),
        records_from_dataframe(load_cnv_table(predicted_path), table="predicted CNVs")
    )

    output_file = output_dir / "evaluation.tsv"
    evaluator.join(results, mock_df).to_csv(output_file, sep="\t", index=False)
    logger.info(f"Evaluation saved to {output_file}")

    summary = evaluator.summarize(results)
    for name, value in summary.items():
        logger.info(f"{name}: {value}")


def run_cnv_plots(
    cnvs_path: Path,
    args: argparse.Namespace,
    config: dict
) -> None:
    """Plot LRR and BAF for every CNV in a table."""
    logger = logging.getLogger(__name__)
    plot_config = config.get("plot", {})

    plotter = CNVPlotter(
        plot_position=plot_config.get("plot_position", 10),
        window=plot_config.get("window"),
        dpi=plot_config.get("dpi", 300),
        key=args.key,
        out_folder=args.output,
        x_axis_define=args.x_axis,
        image_format=plot_config.get("image_format", "png"),
        reader=build_reader(args)
    )

    files = list_intensity_files(args.raw_data, args.pattern, args.recursive)
    logger.info(f"Found {len(files)} intensity files in {args.raw_data}")

    cores = args.cores or plot_config.get("cores", 1)
    outputs = plotter.plot_cnvs(load_cnv_table(cnvs_path), files, args.pattern, cores=cores)
    logger.info(f"Wrote {len(outputs)} CNV plots")


def run_stack_plot(
    cnvs_path: Path,
    args: argparse.Namespace,
    config: dict
) -> None:
    """Plot stacked LRR and BAF tracks for several samples."""
    logger = logging.getLogger(__name__)
    plot_config = config.get("plot", {})

    cnvs = load_cnv_table(cnvs_path)
    ids = args.ids or list(dict.fromkeys(cnvs["ID"].dropna()))
    files = list_intensity_files(args.raw_data, args.pattern, args.recursive)

    plotter = StackPlotter(
        files=files,
        cnvs=cnvs,
        highlight=args.highlight,
        key=args.key,
        out_folder=args.output,
        per_page=plot_config.get("per_page", 5),
        pattern=args.pattern,
        image_format=plot_config.get("image_format", "png"),
        reader=build_reader(args)
    )

    pages = plotter.plot(args.pos, ids)
    logger.info(f"Wrote {len(pages)} stack plot pages")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="iPsychCNV mock evaluation and intensity plots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Evaluate predictions against mock CNVs
  python main.py --mode evaluate --mock mock.tsv --predicted cnvs.tsv --output results/

  # Plot every CNV of a table
  python main.py --mode plot --cnvs cnvs.tsv --raw-data data/ --output plots/ --cores 4

  # Stack plot of a locus
  python main.py --mode stack --pos chr21:28338230-46844965 --cnvs cnvs.tsv --raw-data data/
        """
    )

    parser.add_argument(
        "--mode",
        choices=["evaluate", "plot", "stack"],
        default="evaluate",
        help="Analysis mode (default: evaluate)"
    )

    parser.add_argument("--mock", type=Path, help="Mock (ground truth) CNV table")
    parser.add_argument("--predicted", type=Path, help="Predicted CNV table")
    parser.add_argument("--cnvs", type=Path, help="CNV table to plot")

    parser.add_argument(
        "--raw-data",
        type=Path,
        default=Path("."),
        help="Directory with intensity files (default: current directory)"
    )

    parser.add_argument(
        "--pattern",
        default="",
        help="Regular expression following the sample ID in intensity file names"
    )

    parser.add_argument(
        "--recursive",
        action="store_true",
        help="Search intensity files in subdirectories"
    )

    parser.add_argument("--skip", type=int, default=0, help="Header lines to skip in intensity files")
    parser.add_argument("--snp-list", type=Path, help="SNP list with Name, Chr and Position")
    parser.add_argument("--lcr", type=Path, help="File with SNP names to exclude, one per line")

    parser.add_argument("--pos", help="Locus for stack plots, e.g. chr21:28338230-46844965")
    parser.add_argument("--ids", nargs="+", help="Sample IDs for stack plots (default: all in --cnvs)")
    parser.add_argument("--highlight", help="Region to highlight in stack plots")
    parser.add_argument("--x-axis", help="Fixed plot region for CNV plots")

    parser.add_argument(
        "--key",
        action="store_true",
        help="Show the ID_deidentified column instead of sample IDs"
    )

    parser.add_argument("--cores", type=int, help="Worker processes for CNV plots")

    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("results"),
        help="Output directory (default: results/)"
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config/default.yaml"),
        help="Configuration file (default: config/default.yaml)"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Log file path"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )

    args = parser.parse_args()

    setup_logging(args.log_level, args.log_file)
    logger = logging.getLogger(__name__)

    args.output.mkdir(parents=True, exist_ok=True)

    config = {}
    if args.config.exists():
        config = load_config(args.config)
        logger.info(f"Loaded configuration from {args.config}")

    logger.info(f"iPsychCNV tools - Mode: {args.mode}")

    try:
        if args.mode == "evaluate":
            if not args.mock or not args.predicted:
                parser.error("--mock and --predicted required for evaluate mode")
            run_evaluation(args.mock, args.predicted, args.output, config)

        elif args.mode == "plot":
            if not args.cnvs:
                parser.error("--cnvs required for plot mode")
            run_cnv_plots(args.cnvs, args, config)

        elif args.mode == "stack":
            if not args.cnvs or not args.pos:
                parser.error("--cnvs and --pos required for stack mode")
            run_stack_plot(args.cnvs, args, config)

        logger.info("Pipeline completed successfully")

    except Exception as e:
        logger.error(f"Pipeline failed: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
