#
# conftest.py
#
# Shared fixtures: a throwaway home and source directory, a parameter factory
# and a fake crontab tool that keeps its table in memory.
#
import subprocess

import pytest

from rclone_setup.config import ENV_VARS, CONFIG_ENV_VAR, BackupParameters


class FakeCrontab:
    """Stands in for subprocess.run when the command is ``crontab``."""

    def __init__(self, lines=None, list_returncode=0, install_returncode=0):
        self.lines = list(lines) if lines is not None else None
        self.list_returncode = list_returncode
        self.install_returncode = install_returncode
        self.list_stdout = None
        self.list_error = None
        self.calls = []
        self.payloads = []

    @property
    def install_calls(self):
        return [args for args in self.calls if args[-1] == "-"]

    def __call__(self, args, input=None, capture_output=False, **kwargs):
        self.calls.append(list(args))
        if args[-1] == "-l":
            if self.list_error is not None:
                raise self.list_error
            if self.list_returncode != 0 or self.lines is None:
                return subprocess.CompletedProcess(
                    args, self.list_returncode or 1, b"", b"no crontab for tester\n"
                )
            stdout = self.list_stdout
            if stdout is None:
                stdout = "".join(f"{line}\n" for line in self.lines).encode("utf-8")
            return subprocess.CompletedProcess(args, 0, stdout, b"")

        self.payloads.append(input)
        if self.install_returncode != 0:
            return subprocess.CompletedProcess(
                args, self.install_returncode, b"", b"crontab: errors in crontab file\n"
            )
        lines = input.decode("utf-8").split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        self.lines = lines
        self.list_stdout = None
        return subprocess.CompletedProcess(args, 0, b"", b"")


@pytest.fixture
def home_dir(tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def source_dir(tmp_path):
    source = tmp_path / "data"
    source.mkdir()
    (source / "file.txt").write_text("payload")
    return source


@pytest.fixture
def make_params(home_dir, source_dir):
    def _make(**overrides):
        values = {
            "source": str(source_dir),
            "remote": "minio",
            "bucket": "backup-bucket",
            "endpoint": "http://minio.local:9000",
            "access_key": "AKIAEXAMPLE",
            "secret_key": "s3cr3t",
            "cron": "0 * * * *",
            "home_dir": home_dir,
        }
        values.update(overrides)
        return BackupParameters(**values)

    return _make


@pytest.fixture
def fake_crontab():
    return FakeCrontab()


@pytest.fixture
def clean_env(monkeypatch, home_dir):
    # Keep the developer's own settings and home out of CLI tests.
    for name in list(ENV_VARS.values()) + [CONFIG_ENV_VAR]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(home_dir))
    return monkeypatch
