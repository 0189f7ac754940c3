"""Rendering of the rclone config section and the sync script."""

import re
from typing import Tuple

from .config import BackupParameters

# Expanded by the shell when cron runs the script, so it follows the user.
BACKUP_LOG_FILE = "$HOME/rclone_backup.log"

_SECRET_LINE = re.compile(r"^(secret_access_key\s*=\s*).*$", re.MULTILINE)


def render_rclone_config(params: BackupParameters) -> bytes:
    """Render the rclone.conf section for an S3/MinIO remote with static keys."""
    content = (
        f"[{params.remote}]\n"
        "type = s3\n"
        "provider = Minio\n"
        "env_auth = false\n"
        f"access_key_id = {params.access_key.get_secret_value()}\n"
        f"secret_access_key = {params.secret_key.get_secret_value()}\n"
        f"endpoint = {params.endpoint}\n"
    )
    return content.encode("utf-8")


def render_backup_script(params: BackupParameters) -> bytes:
    """Render the shell script that mirrors the source onto remote:bucket."""
    content = (
        "#!/bin/bash\n"
        f'rclone sync "{params.source}" "{params.remote}:{params.bucket}" '
        f'--log-file="{BACKUP_LOG_FILE}" --log-level INFO --delete-during\n'
    )
    return content.encode("utf-8")


def render_artifacts(params: BackupParameters) -> Tuple[bytes, bytes]:
    """Return (config_bytes, script_bytes) for the given parameters."""
    return render_rclone_config(params), render_backup_script(params)


def redact_rclone_config(text: str) -> str:
    """Mask the secret access key in a rendered config before logging it."""
    return _SECRET_LINE.sub(r"\g<1>**********", text)
