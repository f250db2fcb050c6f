"""Tests for tubeport.cli module."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import SecretStr
from typer.testing import CliRunner

from tubeport.cli import _coerce_value, _log_line_style, app
from tubeport.config import AppConfig, SpotifyConfig, YouTubeConfig, load_config, save_config
from tubeport.convert.errors import TargetAPIError
from tubeport.convert.models import PlaylistDescriptor, TargetPlaylist, TrackDescriptor

runner = CliRunner()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def cli_base_dir(base_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Config dir redirected, logging setup disabled, no token in the environment."""
    monkeypatch.setattr("tubeport.logging.setup_logging", lambda *a, **kw: None)
    monkeypatch.delenv("TUBEPORT_YOUTUBE_TOKEN", raising=False)
    return base_dir


class FakeSource:
    def __init__(self, *args, **kwargs):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        pass

    async def authenticate(self):
        return "spotify-token"

    async def fetch_playlist(self, playlist_id, token):
        return PlaylistDescriptor(name="Road Trip", track_count=2), [
            TrackDescriptor(title="Song A", artists=("Artist1",)),
            TrackDescriptor(title="Song B", artists=("Artist2",)),
        ]


class FakeTarget:
    tokens: list[str] = []

    def __init__(self, *args, **kwargs):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        pass

    async def create_playlist(self, descriptor, token):
        FakeTarget.tokens.append(token)
        return "PLroadtrip"

    async def resolve_track(self, track, token):
        return "vidA" if track.title == "Song A" else None

    async def add_video(self, playlist_id, video_id, token):
        pass

    async def list_playlists(self, token):
        FakeTarget.tokens.append(token)
        return [TargetPlaylist(id="PL1", title="Chill", description="Evening mix")]


@pytest.fixture()
def fake_clients(monkeypatch: pytest.MonkeyPatch):
    FakeTarget.tokens = []
    monkeypatch.setattr("tubeport.convert.spotify.SpotifyCatalogClient", FakeSource)
    monkeypatch.setattr("tubeport.convert.youtube.YouTubeClient", FakeTarget)
    return FakeTarget


# ---------------------------------------------------------------------------
# --help
# ---------------------------------------------------------------------------


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "convert" in result.output.lower()


# ---------------------------------------------------------------------------
# convert
# ---------------------------------------------------------------------------


def test_convert_success(cli_base_dir: Path, fake_clients):
    result = runner.invoke(app, ["convert", "https://open.spotify.com/playlist/ABC123", "--token", "yt"])

    assert result.exit_code == 0, result.output
    assert "Song A" in result.output
    assert "1 added" in result.output
    assert "1 not found" in result.output
    assert "PLroadtrip" in result.output
    assert fake_clients.tokens == ["yt"]


def test_convert_token_from_config(cli_base_dir: Path, fake_clients):
    save_config(AppConfig(youtube=YouTubeConfig(access_token="from-config")))

    result = runner.invoke(app, ["convert", "playlist/ABC123"])

    assert result.exit_code == 0, result.output
    assert fake_clients.tokens == ["from-config"]


def test_convert_token_from_env(cli_base_dir: Path, fake_clients):
    result = runner.invoke(app, ["convert", "playlist/ABC123"], env={"TUBEPORT_YOUTUBE_TOKEN": "from-env"})

    assert result.exit_code == 0, result.output
    assert fake_clients.tokens == ["from-env"]


def test_convert_invalid_reference(cli_base_dir: Path, fake_clients):
    result = runner.invoke(app, ["convert", "https://open.spotify.com/album/xyz", "--token", "yt"])

    assert result.exit_code == 1
    assert "conversion failed" in result.output.lower()
    assert fake_clients.tokens == []


def test_convert_without_token(cli_base_dir: Path, fake_clients):
    result = runner.invoke(app, ["convert", "playlist/ABC123"])

    assert result.exit_code == 1
    assert "access token" in result.output.lower()


# ---------------------------------------------------------------------------
# playlists
# ---------------------------------------------------------------------------


def test_playlists_lists_items(cli_base_dir: Path, fake_clients):
    result = runner.invoke(app, ["playlists", "--token", "yt"])

    assert result.exit_code == 0, result.output
    assert "PL1" in result.output
    assert "Chill" in result.output


def test_playlists_without_token(cli_base_dir: Path, fake_clients):
    result = runner.invoke(app, ["playlists"])

    assert result.exit_code == 1
    assert "no youtube access token" in result.output.lower()


def test_playlists_api_error(cli_base_dir: Path, fake_clients, monkeypatch: pytest.MonkeyPatch):
    async def failing(self, token):
        raise TargetAPIError("YouTube API error 401: Invalid Credentials")

    monkeypatch.setattr(FakeTarget, "list_playlists", failing)
    result = runner.invoke(app, ["playlists", "--token", "yt"])

    assert result.exit_code == 1
    assert "invalid credentials" in result.output.lower()


# ---------------------------------------------------------------------------
# logs
# ---------------------------------------------------------------------------


def test_logs_no_log_file(cli_base_dir: Path):
    result = runner.invoke(app, ["logs"])
    assert result.exit_code == 1
    assert "not found" in result.output.lower()


def test_logs_tail(cli_base_dir: Path):
    lines = [f"2026-10-19T10:00:{i:02d}Z [info     ] event_{i}" for i in range(10)]
    (cli_base_dir / "logs" / "tubeport.log").write_text("\n".join(lines) + "\n")

    result = runner.invoke(app, ["logs", "-n", "3"])

    assert result.exit_code == 0
    assert "event_9" in result.output
    assert "event_7" in result.output
    assert "event_6" not in result.output


def test_logs_convert_log(cli_base_dir: Path):
    (cli_base_dir / "logs" / "convert.log").write_text('{"event": "track_added", "level": "info"}\n')

    result = runner.invoke(app, ["logs", "--convert"])

    assert result.exit_code == 0
    assert "track_added" in result.output


def test_log_line_style():
    assert _log_line_style('{"level": "error", "event": "x"}') == "red"
    assert _log_line_style("[warning  ] track_add_failed") == "yellow"
    assert _log_line_style("[debug    ] noise") == "dim"
    assert _log_line_style("[info     ] fine") is None


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


def test_config_show_masks_secrets(cli_base_dir: Path):
    save_config(
        AppConfig(
            spotify=SpotifyConfig(client_id="my-client", client_secret="very-secret"),
            youtube=YouTubeConfig(access_token="ya29.secret"),
        )
    )

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    assert "my-client" in result.output
    assert "very-secret" not in result.output
    assert "ya29.secret" not in result.output
    assert "***" in result.output


def test_config_set_literal(cli_base_dir: Path):
    result = runner.invoke(app, ["config", "set", "youtube.privacy_status", "unlisted"])

    assert result.exit_code == 0, result.output
    assert load_config().youtube.privacy_status == "unlisted"


def test_config_set_secret(cli_base_dir: Path):
    result = runner.invoke(app, ["config", "set", "spotify.client_secret", "abc"])

    assert result.exit_code == 0
    assert "***" in result.output
    assert load_config().spotify.client_secret.get_secret_value() == "abc"


def test_config_set_float(cli_base_dir: Path):
    result = runner.invoke(app, ["config", "set", "general.http_timeout", "12.5"])

    assert result.exit_code == 0
    assert load_config().general.http_timeout == 12.5


def test_config_set_rejects_non_positive_timeout(cli_base_dir: Path):
    result = runner.invoke(app, ["config", "set", "general.http_timeout", "0"])

    assert result.exit_code == 1
    assert "Invalid value" in result.output
    assert load_config().general.http_timeout == 30.0


def test_config_set_invalid_literal(cli_base_dir: Path):
    result = runner.invoke(app, ["config", "set", "youtube.privacy_status", "hidden"])
    assert result.exit_code == 1
    assert "not a valid option" in result.output


def test_config_set_unknown_section(cli_base_dir: Path):
    result = runner.invoke(app, ["config", "set", "daemon.port", "1"])
    assert result.exit_code == 1
    assert "unknown section" in result.output.lower()


def test_config_set_unknown_field(cli_base_dir: Path):
    result = runner.invoke(app, ["config", "set", "youtube.color", "red"])
    assert result.exit_code == 1
    assert "unknown field" in result.output.lower()


def test_config_set_bad_key(cli_base_dir: Path):
    result = runner.invoke(app, ["config", "set", "loglevel", "debug"])
    assert result.exit_code == 1


def test_coerce_value_float_and_secret():
    assert _coerce_value("2.5", float) == 2.5
    assert _coerce_value("s3cret", SecretStr).get_secret_value() == "s3cret"
    with pytest.raises(ValueError):
        _coerce_value("soon", float)
