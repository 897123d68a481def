"""Shared pytest fixtures for audio-transcoder tests."""

import shlex
import sys
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from audio_transcoder.profile import new_profile

# Stand-in encoder: behaviour selected by the first argument
FAKE_ENCODER = '''
import os
import sys
import time

mode = sys.argv[1]
out = sys.stdout.buffer

if mode == "echo":
    out.write("\\n".join(sys.argv[2:]).encode())
elif mode == "cat":
    with open(sys.argv[2], "rb") as f:
        while chunk := f.read(4096):
            out.write(chunk)
elif mode == "fail":
    out.write(b"partial")
    out.flush()
    sys.stderr.write("encoder exploded\\n")
    sys.exit(3)
elif mode == "stall":
    out.write(b"first chunk")
    out.flush()
    time.sleep(30)
    out.write(b"too late")
elif mode == "handshake":
    out.write(b"ready")
    out.flush()
    deadline = time.monotonic() + 10
    while not os.path.exists(sys.argv[2]) and time.monotonic() < deadline:
        time.sleep(0.01)
    out.write(b"done" if os.path.exists(sys.argv[2]) else b"timeout")
elif mode == "flood":
    for _ in range(int(sys.argv[2])):
        out.write(bytes(64 * 1024))
    out.flush()
    open(sys.argv[3], "w").close()
'''


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the user's real config and environment."""
    monkeypatch.delenv("ATC_CONFIG", raising=False)
    monkeypatch.delenv("ATC_LOG_LEVEL", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def fake_encoder(tmp_path):
    """Command prefix that runs the stand-in encoder script with this interpreter."""
    script = tmp_path / "fake_encoder.py"
    script.write_text(FAKE_ENCODER)
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"


@pytest.fixture
def make_profile(fake_encoder):
    """Build a profile whose template runs the stand-in encoder."""

    def _make(args: str, bitrate: int = 128):
        return new_profile("audio/test", "bin", bitrate, f"{fake_encoder} {args}")

    return _make


@pytest.fixture
def sample_audio(tmp_path):
    """A fake input audio file."""
    audio = tmp_path / "song.flac"
    audio.write_bytes(b"fLaC" + bytes(range(256)) * 64)
    return audio


@pytest.fixture
def sample_config(tmp_path):
    """Create a sample config file."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    config_file = config_dir / "atc.yaml"
    config_file.write_text(
        """
transcode:
  default_profile: "opus"
  timeout: 30

logging:
  level: "error"

profiles:
  flac:
    mimetype: "audio/flac"
    ext: "flac"
    bitrate: 0
    ffcmd: "ffmpeg -v 0 -i <file> -ss <seek> -c:a flac -f flac -"
  mp3:
    mimetype: "audio/mpeg"
    ext: "mp3"
    bitrate: 320
    ffcmd: "lame --silent -b <bitrate> <file> -"
"""
    )
    return config_file


@pytest.fixture(name="_mock_shutil_which")
def mock_shutil_which():
    """Mock shutil.which to simulate available tools."""

    def which_side_effect(tool):
        available = {"ffmpeg", "encoder"}
        return f"/usr/bin/{tool}" if tool in available else None

    with patch("shutil.which", side_effect=which_side_effect) as mock:
        yield mock
