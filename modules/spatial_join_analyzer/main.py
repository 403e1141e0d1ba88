"""Spatial Join Analyzer Module Entry Point

This module serves as the command-line interface and main entry point for the
spatial join analyzer module.
"""

import argparse
import logging
import sys
from typing import Optional

from src.config.config_loader import ConfigLoader
from src.exceptions import SynergyBaseException
from src.utils import setup_logging
from .export import ExportFormat, ExportOptions
from .processor import SpatialJoinAnalyzer

logger = logging.getLogger(__name__)


def _configure_logging(config_loader: ConfigLoader, environment: str, log_level: Optional[str]) -> None:
    try:
        logging_config = config_loader.get_config("logging", environment, default={}) or {}
    except SynergyBaseException:
        logging_config = {}
    setup_logging(
        environment=environment,
        log_level=log_level or logging_config.get("level", "INFO"),
        log_dir=logging_config.get("log_dir")
    )


def main(args: Optional[list] = None) -> int:
    """Main entry point for the spatial join analyzer module.
    
    Args:
        args: Command line arguments (defaults to sys.argv)
        
    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="Synergy Spatial Join Analyzer - Match infrastructure assets to capital project boundaries"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the analysis without writing any output files"
    )
    parser.add_argument(
        "--environment",
        choices=["development", "production"],
        default="development",
        help="Environment to run against (default: development)"
    )
    parser.add_argument(
        "--config-dir",
        default=None,
        help="Directory holding environment_config.json and layer_config.json"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override the configured log level"
    )
    parser.add_argument(
        "--format",
        choices=[export_format.value for export_format in ExportFormat],
        default=ExportFormat.CSV.value,
        help="Report file format (default: csv)"
    )
    
    parsed_args = parser.parse_args(args)
    
    config_loader = ConfigLoader(parsed_args.config_dir)
    _configure_logging(config_loader, parsed_args.environment, parsed_args.log_level)
    
    analyzer = SpatialJoinAnalyzer(
        config_loader,
        environment=parsed_args.environment,
        export_options=ExportOptions(format=ExportFormat(parsed_args.format))
    )
    result = analyzer.process(dry_run=parsed_args.dry_run)
    
    if not result.success:
        for error in result.errors:
            logger.error(error)
        return 1
    
    logger.info(
        f"Analysis complete: {result.metadata.get('matched_references', 0)} of "
        f"{result.records_processed} projects contain infrastructure, "
        f"{result.metadata.get('total_matches', 0)} items matched"
    )
    for output_file in result.metadata.get("output_files", []):
        logger.info(f"Output: {output_file}")
    
    return 0


if __name__ == "__main__":
    sys.exit(main())
