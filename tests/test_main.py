#
# test_main.py
#
# Drives the command-line entry point end to end with a fake crontab.
#
import logging
import subprocess

import pytest

import main
from conftest import FakeCrontab


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(main.LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_crontab(monkeypatch):
    fake = FakeCrontab(lines=["0 0 * * * /another"])
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


def _args(source_dir, *extra):
    return [
        "--source",
        str(source_dir),
        "--access-key",
        "AKIAEXAMPLE",
        "--secret-key",
        "s3cr3t",
        *extra,
    ]


def test_successful_run(clean_env, fake_crontab, home_dir, source_dir):
    assert main.main(_args(source_dir)) == 0

    assert (home_dir / ".config" / "rclone" / "rclone.conf").exists()
    assert (home_dir / "rclone_backup.sh").exists()
    assert fake_crontab.lines == [
        "0 0 * * * /another",
        f"0 * * * * {home_dir / 'rclone_backup.sh'}",
    ]


def test_dry_run_exits_zero_without_changes(clean_env, fake_crontab, home_dir, source_dir, capsys):
    assert main.main(_args(source_dir, "--dry-run", "--verbose")) == 0

    assert not (home_dir / ".config").exists()
    assert not (home_dir / "rclone_backup.sh").exists()
    assert fake_crontab.install_calls == []
    assert "no changes were made" in capsys.readouterr().out


def test_empty_access_key_fails(clean_env, fake_crontab, home_dir, source_dir, capsys):
    argv = ["--source", str(source_dir), "--access-key", "", "--secret-key", "s3cr3t"]
    assert main.main(argv) == 1

    assert "MinIO access key must not be empty" in capsys.readouterr().err
    assert not (home_dir / "rclone_backup.sh").exists()
    assert fake_crontab.calls == []


def test_three_field_schedule_fails(clean_env, fake_crontab, source_dir, capsys):
    assert main.main(_args(source_dir, "--cron", "* * *")) == 1
    assert "exactly 5 fields" in capsys.readouterr().err


def test_credentials_from_environment(clean_env, fake_crontab, home_dir, source_dir):
    clean_env.setenv("MINIO_ACCESS_KEY", "env-key")
    clean_env.setenv("MINIO_SECRET_KEY", "env-secret")
    clean_env.setenv("BACKUP_SOURCE", str(source_dir))

    assert main.main([]) == 0
    assert b"access_key_id = env-key" in (home_dir / ".config" / "rclone" / "rclone.conf").read_bytes()


def test_install_failure_exit_code(clean_env, fake_crontab, source_dir, capsys):
    fake_crontab.install_returncode = 1
    assert main.main(_args(source_dir)) == 2
    assert "Failed to install new crontab" in capsys.readouterr().err


def test_missing_config_file(clean_env, fake_crontab, tmp_path, source_dir, capsys):
    assert main.main(_args(source_dir, "--config", str(tmp_path / "nope.yaml"))) == 1
    assert "Configuration file error" in capsys.readouterr().err


def test_log_file_receives_output(clean_env, fake_crontab, tmp_path, source_dir):
    log_file = tmp_path / "logs" / "setup.log"
    assert main.main(_args(source_dir, "--log-file", str(log_file))) == 0
    assert "Setup complete!" in log_file.read_text(encoding="utf-8")


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main.main(["--version"])
    assert excinfo.value.code == 0
    assert "0.1.0" in capsys.readouterr().out
