#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Command-line runner for the weekly revenue forecast & diagnostics.
- Analyzes one uploaded billing report (default: the latest upload).
- Honors the common ENV vars (DATA_DIR, UPLOADS_DIR, OUTPUTS_DIR, LOGS_DIR, thresholds).
- Writes <stem>_weekly_insights.csv/.xlsx, <stem>_summary.json and the
  artifact manifest at data/outputs/_ARTIFACTS.json

Usage: python run_pipeline.py [input] [--test-size 0.2] [--output-stem NAME]
"""

import sys
import argparse
import logging
from dataclasses import replace
from pathlib import Path

from backend.pipeline import AnalysisConfig, AnalysisError
from backend.utils.file_utils import get_latest_uploaded_file, outputs_dir, uploads_dir
from backend.utils.pipeline_utils import (
    output_stem,
    run_analysis_on_file,
    save_analysis_outputs,
    setup_logging,
)

logger = logging.getLogger("run_pipeline")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Weekly revenue forecast & performance diagnostics")
    parser.add_argument("input", nargs="?", help="CSV/XLSX billing report (default: latest upload)")
    parser.add_argument("--test-size", type=float, default=None,
                        help="Share of the most recent weeks held out for testing (0-1)")
    parser.add_argument("--output-stem", default=None,
                        help="Prefix for output files (default: input file name)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    log_file = setup_logging()

    logger.info("🚀 Starting Weekly Revenue Forecast Pipeline")
    logger.info(f"UPLOADS_DIR= {uploads_dir()}")
    logger.info(f"OUTPUTS_DIR= {outputs_dir()}")
    logger.info(f"Logs will be saved to: {log_file}")

    source = Path(args.input) if args.input else get_latest_uploaded_file()
    if source is None:
        logger.error("❌ No uploaded files found in uploads directory")
        return 1
    if not source.is_file():
        logger.error(f"❌ Input file not found: {source}")
        return 1

    config = AnalysisConfig.from_env()
    if args.test_size is not None:
        if not 0 < args.test_size < 1:
            logger.error(f"❌ --test-size must be between 0 and 1, got {args.test_size}")
            return 1
        config = replace(config, test_size=args.test_size)

    try:
        result = run_analysis_on_file(source, config)
    except AnalysisError as e:
        logger.error(f"❌ Pipeline failed: {e}")
        return 1

    paths = save_analysis_outputs(result, args.output_stem or output_stem(source), source)

    logger.info("🎉 Weekly Revenue Forecast Pipeline completed successfully!")
    logger.info(f"🏆 Best model: {result.best_model.model_name} (MAE ${result.best_model.mae:,.0f})")
    logger.info(f"📈 Average accuracy: {result.benchmarks['avg_accuracy']}")
    for label, count in result.diagnostic_counts.items():
        logger.info(f"   • {label}: {count} weeks")
    logger.info(f"📁 All outputs saved to: {paths['csv'].parent}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
