"""Crontab reconciliation for the backup script entry.

The live crontab is shared with every other job of the user, so it is only
ever replaced as a whole: read it with ``crontab -l``, compute the new table
as a pure function over the list of lines, then hand the result to
``crontab -`` in one go.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import CrontabInstallError

Runner = Callable[..., subprocess.CompletedProcess]


class ListStatus(Enum):
    """Outcome of reading the current crontab."""

    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class CrontabListing:
    """Lines read from ``crontab -l`` and how the read went."""

    status: ListStatus
    lines: Tuple[str, ...] = ()
    detail: str = ""

    def starting_lines(self) -> List[str]:
        """Lines to reconcile against; EMPTY and ERROR both start from nothing."""
        if self.status is ListStatus.OK:
            return list(self.lines)
        return []


@dataclass(frozen=True)
class ReconcilePlan:
    """The new crontab computed from the current one."""

    kept: List[str]
    removed: List[str]
    entry: str

    @property
    def new_lines(self) -> List[str]:
        return self.kept + [self.entry]


@dataclass
class ReconcileResult:
    """Result of a reconcile call."""

    listing: CrontabListing
    plan: ReconcilePlan
    installed: bool = False
    warnings: List[str] = field(default_factory=list)


def split_crontab_lines(text: str) -> List[str]:
    """
    Split ``crontab -l`` output on newlines only.

    Form feeds, U+2028 and carriage returns inside a line belong to the job
    text and are kept. A single carriage return at the end of a line is
    dropped, as for CRLF output.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def schedule_entry(cron: str, script_path: Path) -> str:
    """Build the single crontab line that runs ``script_path`` on ``cron``."""
    return f"{' '.join(cron.split())} {script_path}"


def plan_reconcile(
    current_lines: Sequence[str], script_path: Path, cron: str
) -> ReconcilePlan:
    """
    Drop every line mentioning ``script_path`` and append a fresh entry.

    Matching is a plain substring test on the whole line, so old entries with
    a different schedule and comments naming the script are removed as well.
    Unrelated lines are kept verbatim and in order.

    Args:
        current_lines: Current crontab lines
        script_path: Path of the backup script
        cron: Five-field cron schedule for the new entry

    Returns:
        ReconcilePlan with kept lines, removed lines and the new entry
    """
    needle = str(script_path)
    kept = []
    removed = []
    for line in current_lines:
        if needle in line:
            removed.append(line)
        else:
            kept.append(line)
    return ReconcilePlan(kept=kept, removed=removed, entry=schedule_entry(cron, script_path))


class CrontabManager:
    """Reads and replaces the user's crontab through the crontab tool."""

    def __init__(self, crontab_command: str = "crontab", runner: Optional[Runner] = None):
        self.crontab_command = crontab_command
        self.runner = runner or subprocess.run
        self.logger = logging.getLogger(__name__)

    def list_jobs(self) -> CrontabListing:
        """
        Read the current crontab with ``crontab -l``.

        Never raises. A non-zero exit (typically "no crontab for user") is
        EMPTY; failing to run the tool or to decode its output is ERROR.
        """
        try:
            result = self.runner([self.crontab_command, "-l"], capture_output=True)
        except OSError as e:
            return CrontabListing(ListStatus.ERROR, detail=f"could not run crontab: {e}")

        if result.returncode != 0:
            return CrontabListing(
                ListStatus.EMPTY, detail=_decode_lossy(result.stderr).strip()
            )

        try:
            text = result.stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            return CrontabListing(ListStatus.ERROR, detail=f"unreadable crontab output: {e}")

        return CrontabListing(ListStatus.OK, lines=tuple(split_crontab_lines(text)))

    def install_jobs(self, lines: Sequence[str]) -> None:
        """
        Replace the whole crontab with ``lines`` via ``crontab -``.

        Raises:
            CrontabInstallError: the tool could not be run or exited non-zero
        """
        payload = "".join(f"{line}\n" for line in lines).encode("utf-8")
        try:
            result = self.runner(
                [self.crontab_command, "-"], input=payload, capture_output=True
            )
        except OSError as e:
            raise CrontabInstallError(f"Failed to run crontab: {e}") from e

        if result.returncode != 0:
            raise CrontabInstallError(
                "Failed to install new crontab",
                returncode=result.returncode,
                stderr=_decode_lossy(result.stderr),
            )

    def reconcile(self, script_path: Path, cron: str, dry_run: bool = False) -> ReconcileResult:
        """
        Make the crontab contain exactly one entry for ``script_path``.

        Args:
            script_path: Path of the backup script
            cron: Five-field cron schedule
            dry_run: Compute and log the new table without installing it

        Returns:
            ReconcileResult describing what was (or would be) installed
        """
        self.logger.debug("Updating crontab...")

        listing = self.list_jobs()
        if listing.status is not ListStatus.OK:
            self.logger.debug(
                "No existing crontab found or error reading it, starting fresh: "
                f"{listing.detail or listing.status.value}"
            )

        plan = plan_reconcile(listing.starting_lines(), script_path, cron)
        for line in plan.removed:
            self.logger.debug(f"Removing existing cron job line: {line}")

        self.logger.debug("New crontab lines:")
        for line in plan.new_lines:
            self.logger.debug(f"  {line}")

        result = ReconcileResult(listing=listing, plan=plan)
        if listing.status is ListStatus.ERROR:
            result.warnings.append(f"Existing crontab could not be read: {listing.detail}")

        if dry_run:
            self.logger.info(
                f"(dry-run) Would update crontab to run backup script with schedule: '{cron}'"
            )
            return result

        self.install_jobs(plan.new_lines)
        result.installed = True
        self.logger.debug("Crontab updated successfully.")
        return result


def _decode_lossy(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
