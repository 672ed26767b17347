"""
Command-line interface for warehouse batch loads.

Usage:
    dwh-etl run [--config config/pipeline.yaml] [--report result.json] [options]
    dwh-etl verify [--config config/pipeline.yaml] [options]
"""

import argparse
import os
import sys
from pathlib import Path

import psycopg
from dotenv import load_dotenv
from psycopg import OperationalError

from dwh_etl.batch.pipeline import WarehouseLoadPipeline
from dwh_etl.core.config import DEFAULT_CONFIG_PATH, PipelineConfigLoader
from dwh_etl.core.errors import ConfigError, PipelineError
from dwh_etl.observability.logger import configure_logging, get_logger
from dwh_etl.observability.metrics import start_metrics_server
from dwh_etl.warehouse.connection import close_pool, initialize_pool

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_VERIFICATION_FAILED = 2


def _open_pipeline(args) -> WarehouseLoadPipeline:
    config = PipelineConfigLoader(args.config).load()
    pool = initialize_pool(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
    )
    return WarehouseLoadPipeline(pool, config)


def run_command(args) -> int:
    """
    Run one full batch and report the outcome.

    Returns:
        Process exit code
    """
    pipeline = _open_pipeline(args)
    try:
        result = pipeline.run(batch_id=args.batch_id, verify=not args.skip_verify)
    finally:
        close_pool()

    logger.info("=" * 60)
    for step in result.steps:
        logger.info(
            f"Step {step.step} {step.target}: {step.status}, "
            f"{step.row_count} rows in {step.duration_seconds:.3f}s",
            extra=step.model_dump(mode="json"),
        )
    logger.info("=" * 60)

    if args.report:
        Path(args.report).write_text(result.model_dump_json(indent=2))
        logger.info(f"Batch report written to {args.report}")

    if not result.committed:
        failure = result.failed_step
        logger.error(
            f"Batch {result.batch_id} rolled back: step {failure.step} ({failure.target}) "
            f"{failure.error_type}: {failure.message}"
        )
        return EXIT_FAILED

    logger.info(
        f"Batch {result.batch_id} committed: {result.total_rows} rows "
        f"in {result.duration_seconds:.3f}s"
    )
    if result.verified is False:
        logger.warning(f"Batch {result.batch_id} committed but verification failed")
    return EXIT_OK


def verify_command(args) -> int:
    """Check the expected targets of the configuration are populated."""
    pipeline = _open_pipeline(args)
    try:
        report = pipeline.verify()
    finally:
        close_pool()

    for status in report.targets:
        logger.info(
            f"{status.target}: exists={status.exists} rows={status.row_count}",
            extra={"target": str(status.target), "exists": status.exists, "row_count": status.row_count},
        )

    if not report.passed:
        logger.warning(
            f"Verification failed: missing={[str(t) for t in report.missing]} "
            f"empty={[str(t) for t in report.empty]}"
        )
        return EXIT_VERIFICATION_FAILED
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dwh-etl",
        description="Transform staging batches and load the warehouse",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a full batch with the default configuration
  dwh-etl run

  # Run and keep a JSON report of the batch
  dwh-etl run --report batch_result.json

  # Check that every warehouse target is populated
  dwh-etl verify --config config/pipeline.yaml
        """
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Load environment variables from this .env file first",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run a full transformation-and-load batch")
    run_parser.add_argument("--batch-id", default=None, help="Batch identifier (default: timestamp)")
    run_parser.add_argument("--report", default=None, help="Write the batch result as JSON to this path")
    run_parser.add_argument(
        "--skip-verify",
        action="store_true",
        help="Skip post-commit verification",
    )
    run_parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port while the batch runs",
    )

    verify_parser = subparsers.add_parser("verify", help="Verify warehouse targets are populated")

    for sub in (run_parser, verify_parser):
        sub.add_argument(
            "--config",
            default=str(DEFAULT_CONFIG_PATH),
            help=f"Path to pipeline YAML file (default: {DEFAULT_CONFIG_PATH})",
        )
        sub.add_argument("--log-level", default=None, help="Log level (default: env LOG_LEVEL or INFO)")
        sub.add_argument("--log-format", choices=["json", "text"], default=None, help="Log format")

        # Database connection arguments; unset values fall back to DB_* env vars
        sub.add_argument("--db-host", default=None, help="Database host (env DB_HOST)")
        sub.add_argument("--db-port", type=int, default=None, help="Database port (env DB_PORT)")
        sub.add_argument("--db-name", default=None, help="Database name (env DB_NAME)")
        sub.add_argument("--db-user", default=None, help="Database user (env DB_USER)")
        sub.add_argument("--db-password", default=None, help="Database password (env DB_PASSWORD)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILED

    if args.env_file:
        load_dotenv(args.env_file, override=False)

    configure_logging(level=args.log_level, format_type=args.log_format)

    if getattr(args, "metrics_port", None):
        start_metrics_server(args.metrics_port)

    try:
        if args.command == "run":
            return run_command(args)
        return verify_command(args)
    except (ConfigError, FileNotFoundError) as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_FAILED
    except (OperationalError, ValueError) as e:
        logger.error(f"Cannot connect to warehouse: {e}", extra={"db_host": os.getenv("DB_HOST")})
        return EXIT_FAILED
    except PipelineError as e:
        logger.error(f"Batch aborted: {e}")
        return EXIT_FAILED
    except psycopg.Error as e:
        logger.error(f"Warehouse error: {e}", extra={"error_type": type(e).__name__})
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
