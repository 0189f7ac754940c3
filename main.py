#!/usr/bin/env python3
"""
rclone-setup: provision a cron-scheduled rclone backup to MinIO.

Main entry point for the setup tool.
"""

import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from rclone_setup import __version__
from rclone_setup.config import BackupParameters, build_parameters
from rclone_setup.errors import ParameterValidationError, SetupError
from rclone_setup.setup_manager import SetupManager, SetupResult

LOGGER_NAME = "rclone_setup"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """Set up console logging, plus a rotating log file when requested."""
    logger = logging.getLogger(LOGGER_NAME)
    # Repeated calls (tests, re-entry) replace the handlers instead of stacking them.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_file), maxBytes=1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Write an rclone MinIO remote, a sync script and a crontab entry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Every option can also come from an environment variable (shown in brackets)
or from a YAML file passed with --config. Command-line flags win over the
environment, which wins over the config file.

Examples:
  python main.py --source /srv/data --access-key KEY --secret-key SECRET
  python main.py --cron "30 2 * * *" --dry-run --verbose
  python main.py --config ~/.config/rclone-setup.yaml
        """,
    )

    parser.add_argument("--source", help="Local directory to back up [BACKUP_SOURCE]")
    parser.add_argument("--remote", help="Rclone remote name [RCLONE_REMOTE]")
    parser.add_argument("--bucket", help="Remote bucket/container name [REMOTE_BUCKET]")
    parser.add_argument("--endpoint", help="MinIO server endpoint URL [MINIO_ENDPOINT]")
    parser.add_argument(
        "--access-key", dest="access_key", help="MinIO access key (required) [MINIO_ACCESS_KEY]"
    )
    parser.add_argument(
        "--secret-key", dest="secret_key", help="MinIO secret key (required) [MINIO_SECRET_KEY]"
    )
    parser.add_argument(
        "--cron", help="Cron schedule expression, default hourly [CRON_SCHEDULE]"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=None,
        help="Enable verbose logging [RCLONE_SETUP_VERBOSE]",
    )
    parser.add_argument(
        "--dry-run",
        "-d",
        action="store_true",
        default=None,
        help="Show actions without making changes [RCLONE_SETUP_DRY_RUN]",
    )
    parser.add_argument(
        "--log-file", dest="log_file", help="Also write log output to this file [RCLONE_SETUP_LOG_FILE]"
    )
    parser.add_argument("--config", help="YAML file with default values [RCLONE_SETUP_CONFIG]")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def log_setup_summary(result: SetupResult, logger: logging.Logger) -> None:
    """Log the closing summary of a run."""
    if result.crontab is not None and result.crontab.plan.removed:
        logger.info(
            f"Replaced {len(result.crontab.plan.removed)} existing crontab line(s) for the backup script"
        )
    if not result.dry_run:
        logger.info(f"Files changed: {result.changed_files}")

    logger.info("Setup complete!")
    if result.dry_run:
        logger.info("(dry-run mode - no changes were made)")
    logger.info("Remember to keep your access keys secure.")


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = parse_arguments(argv)
    cli_values = {
        key: value for key, value in vars(args).items() if key != "config"
    }

    logger = None
    try:
        params: BackupParameters = build_parameters(cli_values, config_path=args.config)

        logger = setup_logging(params.verbose, params.log_file)
        if params.dry_run:
            logger.info("Starting rclone backup setup in DRY RUN mode")
        else:
            logger.info("Starting rclone backup setup")

        result = SetupManager(params).run()
        log_setup_summary(result, logger)
        return 0

    except FileNotFoundError as e:
        error_msg = f"Configuration file error: {e}"
        print(f"ERROR: {error_msg}", file=sys.stderr)
        if logger:
            logger.critical(error_msg)
        return 1

    except ParameterValidationError as e:
        error_msg = f"Invalid parameters: {e}"
        print(f"ERROR: {error_msg}", file=sys.stderr)
        if logger:
            logger.critical(error_msg)
        return 1

    except SetupError as e:
        error_msg = f"Setup failed: {e}"
        print(f"ERROR: {error_msg}", file=sys.stderr)
        if logger:
            logger.critical(error_msg)
        return 2

    except KeyboardInterrupt:
        error_msg = "Setup interrupted by user"
        print(f"\nINTERRUPTED: {error_msg}", file=sys.stderr)
        if logger:
            logger.warning(error_msg)
        return 130

    except Exception as e:
        error_msg = f"Unexpected error: {e}"
        print(f"ERROR: {error_msg}", file=sys.stderr)
        if logger:
            logger.critical(error_msg, exc_info=True)
        return 1


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
