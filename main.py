#!/usr/bin/env python
"""
Loan default tuning pipeline.

Validates the configuration, explores and splits the loans dataset, tunes every
configured tree family with stratified k-fold cross-validation, and evaluates
the overall winner once on the held-out test set.
"""
import argparse
import logging
import random
import sys
import traceback
from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np

sys.path.insert(0, str(Path(__file__).parent))

from modules.comparison import ModelComparisonController
from modules.config_manager import ConfigurationManager
from modules.data_manager import DataManager
from modules.exploration_engine import ExplorationEngine
from modules.logging_config import LoggingConfigurator
from modules.selection_engine import FinalReport
from modules.split_engine import SplitEngine
from utils import enable_copy_on_write
from utils.exceptions import LoanMLException
from utils.results_layout import ResultsLayoutManager

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cross-validated tuning and comparison of tree classifiers on a loans dataset",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", default="config/config.json", help="Run configuration (JSON)")
    parser.add_argument("--schema", default="config/schema.json", help="JSON schema for the configuration")
    parser.add_argument("--run-id", default=None, help="Results subfolder name; a timestamp when omitted")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    parser.add_argument("--dry-run", action="store_true", help="Validate and lay out the run directory, then stop")
    return parser.parse_args(argv)


def setup_global_determinism(config: dict, logger: logging.Logger) -> None:
    """
    Seed the global generators as a backstop. Every stochastic step also receives
    its own seed explicitly from config['_internal_seeds'].
    """
    seed = config.get('splitting', {}).get('seed', 42)
    logger.info(f"Global seed: {seed}")
    random.seed(seed)
    np.random.seed(seed)
    enable_copy_on_write()


def setup_run_directory(config: dict, run_id: str, logger: logging.Logger) -> Path:
    """Create <base_results_dir>/<run_id> and make it the base directory for every engine."""
    outputs = config.setdefault('outputs', {})
    run_dir = (Path(outputs.get('base_results_dir', 'results')) / run_id).absolute()
    run_dir.mkdir(parents=True, exist_ok=True)
    outputs['base_results_dir'] = str(run_dir)
    logger.info(f"Run directory: {run_dir}")
    return run_dir


def initialize(args: argparse.Namespace) -> Tuple[dict, logging.Logger, str, ResultsLayoutManager]:
    config_manager = ConfigurationManager(config_path=args.config, schema_path=args.schema)
    config = config_manager.load_and_validate()
    if args.verbose:
        config.setdefault('logging', {})['level'] = 'DEBUG'

    configurator = LoggingConfigurator(config)
    configurator.setup()
    logger = configurator.get_logger('pipeline')
    logger.info(f"Configuration loaded from {args.config}")

    config_manager.run_id = args.run_id
    run_id = config_manager.generate_run_id()
    run_dir = setup_run_directory(config, run_id, logger)

    layout = ResultsLayoutManager(run_dir, excel_copy=config['outputs'].get('save_excel_copy', False),
                                  logger=logger)
    layout.ensure_base_structure()
    config_manager.save_artifacts(str(run_dir))
    setup_global_determinism(config, logger)
    return config, logger, run_id, layout


def log_phase(logger: logging.Logger, title: str) -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def run_pipeline(config: dict, logger: logging.Logger, run_id: str) -> FinalReport:
    log_phase(logger, "PHASE 1: DATA VALIDATION & EXPLORATION")
    data = DataManager(config, logger).execute(run_id)
    ExplorationEngine(config, logger).execute(data, run_id)

    log_phase(logger, "PHASE 2: STRATIFIED TRAIN/TEST SPLIT")
    train_df, test_df = SplitEngine(config, logger).execute(data, run_id)

    log_phase(logger, "PHASE 3: CROSS-VALIDATED TUNING, COMPARISON & TEST EVALUATION")
    report, comparison = ModelComparisonController(config, logger).run(train_df, test_df, run_id)

    logger.info("Family ranking:")
    for _, row in comparison.iterrows():
        logger.info(f"  {row['model_family']:<16} {row['config_id'] or '-':<22} mean {row['metric']}={row['mean']:.4f}")
    return report


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Returns the process exit code."""
    logger = None
    try:
        args = parse_arguments(argv)
        config, logger, run_id, layout = initialize(args)

        if args.dry_run:
            logger.info("Dry run: configuration valid, run directory prepared.")
            print(f"\n[SUCCESS] Configuration validated ({args.config}).")
            return EXIT_OK

        report = run_pipeline(config, logger, run_id)
        layout.write_manifest()

        logger.info(f"Winner: {report.spec.config_id} {report.spec.params}")
        for metric, value in report.metrics.items():
            logger.info(f"  test {metric}: {value:.4f}")
        print(f"\n[SUCCESS] Run {run_id} complete. Results in {config['outputs']['base_results_dir']}")
        return EXIT_OK

    except LoanMLException as e:
        print(f"\n[ERROR] Pipeline Error: {e}")
        if logger:
            logger.critical(f"Pipeline Error: {e}", exc_info=True)
        else:
            traceback.print_exc()
        return EXIT_FAILURE

    except KeyboardInterrupt:
        print("\n[INTERRUPTED] Pipeline interrupted by user.")
        if logger:
            logger.warning("Pipeline interrupted by user (Ctrl+C)")
        return EXIT_INTERRUPTED

    except Exception as e:
        print(f"\n[CRITICAL] Unexpected Error: {e}")
        if logger:
            logger.critical(f"Unexpected Error: {e}", exc_info=True)
        else:
            traceback.print_exc()
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
