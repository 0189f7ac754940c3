"""Exceptions raised while provisioning the backup job."""

from pathlib import Path


class SetupError(Exception):
    """Base class for every failure that aborts a setup run."""


class ParameterValidationError(SetupError):
    """Parameters were rejected before anything was written."""


class EmptyCredentialError(ParameterValidationError):
    """Access key or secret key is empty or only whitespace."""


class SourceNotFoundError(ParameterValidationError):
    """The backup source directory does not exist."""


class MalformedScheduleError(ParameterValidationError):
    """The cron schedule does not have exactly five fields."""


class ConfigFileError(ParameterValidationError):
    """A configuration file or merged parameter set could not be loaded."""


class ArtifactIOError(SetupError):
    """Reading, writing or chmod-ing a managed file failed."""

    def __init__(self, path: Path, cause: OSError):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"I/O error on {self.path}: {cause}")


class CrontabInstallError(SetupError):
    """Installing the new crontab was rejected by the crontab tool."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        detail = f" (exit code {returncode})" if returncode is not None else ""
        if stderr:
            detail += f": {stderr.strip()}"
        super().__init__(f"{message}{detail}")
