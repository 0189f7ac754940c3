"""Provisioning of the rclone config, sync script and crontab entry."""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .artifacts import (
    CONFIG_FILE_MODE,
    SCRIPT_FILE_MODE,
    WriteOutcome,
    ensure_directory,
    write_if_changed,
)
from .config import BackupParameters
from .crontab import CrontabManager, ReconcileResult
from .renderer import redact_rclone_config, render_artifacts
from .schedule_checker import ScheduleChecker
from .validator import validate_parameters


class SetupResult:
    """Result of a setup run."""

    def __init__(
        self,
        dry_run: bool,
        rclone_installed: bool,
        config_outcome: Optional[WriteOutcome] = None,
        script_outcome: Optional[WriteOutcome] = None,
        crontab: Optional[ReconcileResult] = None,
        next_run: Optional[datetime] = None,
        warnings: Optional[List[str]] = None,
    ):
        self.dry_run = dry_run
        self.rclone_installed = rclone_installed
        self.config_outcome = config_outcome
        self.script_outcome = script_outcome
        self.crontab = crontab
        self.next_run = next_run
        self.warnings = warnings or []

    @property
    def changed_files(self) -> int:
        """Number of artifacts actually rewritten."""
        return sum(
            1
            for outcome in (self.config_outcome, self.script_outcome)
            if outcome is WriteOutcome.WRITTEN
        )


class SetupManager:
    """Runs validate, render, write and reconcile for one set of parameters."""

    def __init__(self, params: BackupParameters, crontab: Optional[CrontabManager] = None):
        self.params = params
        self.dry_run = params.dry_run
        self.crontab = crontab or CrontabManager()
        self.logger = logging.getLogger(__name__)

    def check_rclone_installed(self) -> bool:
        """Check if rclone is on PATH."""
        return shutil.which("rclone") is not None

    def run(self) -> SetupResult:
        """
        Provision the backup job.

        Raises:
            ParameterValidationError: parameters rejected, nothing was touched
            ArtifactIOError: a file could not be written; earlier writes stay
            CrontabInstallError: crontab rejected the new table
        """
        params = self.params
        validate_parameters(params)
        self.logger.debug(f"Parameters: {params!r}")

        result = SetupResult(dry_run=self.dry_run, rclone_installed=self.check_rclone_installed())
        if not result.rclone_installed:
            message = "'rclone' not found in PATH. Please install it before proceeding."
            self.logger.warning(message)
            result.warnings.append(message)
        else:
            self.logger.debug("Found 'rclone' in PATH.")

        self.logger.debug(f"Rclone config dir: {params.rclone_config_dir}")
        self.logger.debug(f"Rclone config file: {params.rclone_config_file}")
        self.logger.debug(f"Backup script: {params.backup_script}")

        config_content, script_content = render_artifacts(params)

        if self.dry_run:
            self.logger.info(f"(dry-run) Would create directory: {params.rclone_config_dir}")
        else:
            ensure_directory(params.rclone_config_dir)

        result.config_outcome = self._write_artifact(
            "rclone config file",
            params.rclone_config_file,
            config_content,
            CONFIG_FILE_MODE,
            redact_rclone_config(config_content.decode("utf-8")),
        )
        result.script_outcome = self._write_artifact(
            "backup script",
            params.backup_script,
            script_content,
            SCRIPT_FILE_MODE,
            script_content.decode("utf-8"),
        )

        result.crontab = self.crontab.reconcile(
            params.backup_script, params.cron, dry_run=self.dry_run
        )
        for warning in result.crontab.warnings:
            self.logger.warning(warning)
        result.warnings.extend(result.crontab.warnings)

        result.next_run = ScheduleChecker.next_run_time(params.cron)
        if result.next_run is not None:
            self.logger.info(f"Next backup run: {result.next_run:%Y-%m-%d %H:%M}")
        else:
            message = f"Could not compute next run time for schedule '{params.cron}'"
            self.logger.warning(message)
            result.warnings.append(message)

        return result

    def _write_artifact(
        self, label: str, path: Path, content: bytes, mode: int, printable: str
    ) -> Optional[WriteOutcome]:
        if self.dry_run:
            self.logger.info(f"(dry-run) Would write {label} to: {path}")
            self.logger.debug(f"--- {path.name} content ---\n{printable}")
            return None

        outcome = write_if_changed(path, content, mode)
        if outcome is WriteOutcome.WRITTEN:
            self.logger.info(f"Wrote {label}: {path} (mode {mode:o})")
        else:
            self.logger.info(f"{label.capitalize()} up to date: {path}")
        return outcome
