import argparse
import logging
import sys
from typing import List, Optional

from .config import DEFAULT_CONFIG_PATH, load_settings
from .engine import CalculationOrchestrator
from .fixtures import SAMPLE_PROJECT_ID, sample_source
from .logging_conf import setup_logging
from .reporting import (
    print_header, print_result, format_result_frame, save_report, C_SUCCESS, C_ERROR, C_RESET,
)
from .repository import CompositionSource, ExcelCompositionSource, write_composition_workbook
from .visualization import Visualizer, REPORT_DIRECTORY

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mpg-lca",
        description="Calculate the MPG (environmental performance) of building projects.",
    )
    parser.add_argument("--source", help="Composition workbook (.xlsx). Default: built-in sample house.")
    parser.add_argument("--project-id", action="append", dest="project_ids",
                        help="Project to calculate (repeatable). Default: the sample project.")
    parser.add_argument("--all", action="store_true", help="Calculate every project in the source.")
    parser.add_argument("--params", default=DEFAULT_CONFIG_PATH, help="Parameter workbook (Key/Value).")
    parser.add_argument("--debug", action="store_true", help="Log every calculation step.")
    parser.add_argument("--log-file", help="Also write a detailed log to this file.")
    parser.add_argument("--no-color", action="store_true", help="Plain console output.")
    parser.add_argument("--plot", action="store_true", help="Save phase/element charts.")
    parser.add_argument("--export", action="store_true", help="Save CSV/Excel report.")
    parser.add_argument("--reports-dir", default=REPORT_DIRECTORY, help="Output folder for reports and charts.")
    parser.add_argument("--write-sample", metavar="PATH",
                        help="Write the sample composition to a workbook and exit.")
    return parser


def _project_ids(args, source: CompositionSource) -> List[str]:
    if args.all:
        return source.list_project_ids()
    if args.project_ids:
        return args.project_ids
    if args.source:
        ids = source.list_project_ids()
        return ids[:1]
    return [SAMPLE_PROJECT_ID]


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        console_level=logging.DEBUG if args.debug else logging.INFO,
        file_path=args.log_file,
        no_color=args.no_color,
    )

    if args.write_sample:
        write_composition_workbook(sample_source(), args.write_sample)
        return 0

    print_header("MPG life-cycle impact calculation")

    overrides = {"debug": True} if args.debug else {}
    settings = load_settings(args.params, **overrides)

    if args.source:
        try:
            source = ExcelCompositionSource(args.source)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read composition workbook {args.source}: {e}")
            return 2
    else:
        logger.info("No workbook given, using the sample timber-frame house.")
        source = sample_source()

    project_ids = _project_ids(args, source)
    if not project_ids:
        logger.error("No projects to calculate.")
        return 2

    orchestrator = CalculationOrchestrator(source, settings)
    results = orchestrator.calculate_many(project_ids)

    for result in results:
        print_result(result, source.load_project(result.project_id), settings.decimals)

    if args.export:
        csv_path, xlsx_path = save_report(results, args.reports_dir)
        print(f"Report saved to: {csv_path}")

    if args.plot:
        if len(results) == 1:
            vis = Visualizer(mode="single_run", output_root=args.reports_dir)
            project = source.load_project(results[0].project_id)
            title = project.name if project else ""
            vis.plot_phase_breakdown(results[0], title)
            vis.plot_element_breakdown(results[0], title)
        else:
            vis = Visualizer(mode="batch_run", output_root=args.reports_dir)
            vis.plot_batch_summary(format_result_frame(results))
        print(f"\nCharts saved to: {vis.session_dir}")

    failed = [r for r in results if not r.succeeded]
    if failed:
        print(f"{C_ERROR}{len(failed)} of {len(results)} calculations failed.{C_RESET}")
        return 1
    print(f"{C_SUCCESS}{len(results)} calculation(s) completed.{C_RESET}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
