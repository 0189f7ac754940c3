"""Precondition checks run before anything is written."""

from pathlib import Path

from .config import BackupParameters
from .errors import EmptyCredentialError, MalformedScheduleError, SourceNotFoundError

CRON_FIELD_COUNT = 5


def validate_parameters(params: BackupParameters) -> None:
    """
    Check the parameters of a run, raising on the first problem found.

    Args:
        params: Parameters for this run

    Raises:
        EmptyCredentialError: access key or secret key is blank
        SourceNotFoundError: the source directory does not exist
        MalformedScheduleError: the cron schedule spans lines or does not have five fields
    """
    if not params.access_key.get_secret_value().strip():
        raise EmptyCredentialError("MinIO access key must not be empty")
    if not params.secret_key.get_secret_value().strip():
        raise EmptyCredentialError("MinIO secret key must not be empty")

    # Path("") would resolve to the working directory.
    if not params.source.strip() or not Path(params.source).exists():
        raise SourceNotFoundError(
            f"Backup source directory does not exist: {params.source}"
        )

    # A line break inside the schedule would split the crontab entry in two.
    if "\n" in params.cron.strip() or "\r" in params.cron.strip():
        raise MalformedScheduleError(
            f"Cron schedule must be a single line, got {params.cron!r}"
        )

    # Field count only; values are left for cron itself to interpret.
    if len(params.cron.split()) != CRON_FIELD_COUNT:
        raise MalformedScheduleError(
            f"Cron schedule must have exactly {CRON_FIELD_COUNT} fields, got '{params.cron}'"
        )
