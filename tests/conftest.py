import os
import subprocess
import tempfile

import pytest

# Keep app import-time side effects out of the working directory
os.environ.setdefault('DOWNLOAD_FOLDER', tempfile.mkdtemp(prefix='video-downloader-tests-'))

import downloader  # noqa: E402
from app import app as flask_app  # noqa: E402


class FakeRun:
    """Stands in for subprocess.run and records every yt-dlp invocation"""

    def __init__(self):
        self.calls = []
        self.kwargs = []
        self.returncode = 0
        self.stdout = ''
        self.stderr = ''
        self.raises = None
        # (title, ext) written to the -o template when set
        self.creates = None

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        self.kwargs.append(kwargs)
        if self.raises is not None:
            raise self.raises
        if self.creates and '-o' in cmd:
            template = cmd[cmd.index('-o') + 1]
            title, ext = self.creates
            path = template.replace('%(title).100s', title).replace('%(ext)s', ext)
            with open(path, 'wb') as f:
                f.write(b'media')
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def fake_run(monkeypatch):
    runner = FakeRun()
    monkeypatch.setattr(downloader.subprocess, 'run', runner)
    return runner


@pytest.fixture
def download_dir(tmp_path):
    folder = tmp_path / 'downloads'
    folder.mkdir()
    return folder


@pytest.fixture
def client(download_dir):
    flask_app.config.update(
        TESTING=True,
        DOWNLOAD_FOLDER=str(download_dir),
        YT_DLP_COMMAND=['yt-dlp'],
        FFMPEG_PATH=None,
    )
    return flask_app.test_client()
