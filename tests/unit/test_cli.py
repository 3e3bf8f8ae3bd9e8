"""Unit tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from mkvbatch.cli import main
from mkvbatch.models.external import ExternalFile, ExternalKind
from mkvbatch.models.media import VideoFile
from mkvbatch.models.scan import InspectChunk
from mkvbatch.models.track import Track, TrackKind
from mkvbatch.store import StoreSnapshot


@pytest.fixture
def session_file(tmp_path: Path) -> Path:
    snapshot = StoreSnapshot(
        videos=[
            VideoFile(
                id="v1",
                path="/media/Ep01.mkv",
                tracks=[Track(id="1", kind=TrackKind.AUDIO, language="jpn", name="Main")],
            ),
        ],
        externals={
            ExternalKind.SUBTITLE: [
                ExternalFile(id="s1", path="/subs/Ep01.srt", kind=ExternalKind.SUBTITLE),
                ExternalFile(id="s2", path="/subs/other.srt", kind=ExternalKind.SUBTITLE),
            ]
        },
    )
    path = tmp_path / "session.json"
    path.write_text(snapshot.model_dump_json(by_alias=True), encoding="utf-8")
    return path


class _ScanningInspector:
    """Stands in for FFprobeInspector: every path becomes a bare external file."""

    def __init__(self, _ffprobe_path: str) -> None:
        pass

    async def inspect_stream(self, scan_id, paths, kind, include_tracks=True, batch_size=8):
        items = [ExternalFile(id=p, path=p, kind=kind, language="eng") for p in paths]
        yield InspectChunk(scan_id=scan_id, processed=len(items), total=len(paths), items=items)
        yield InspectChunk(scan_id=scan_id, processed=len(items), total=len(paths), done=True)


def _run(*argv: str) -> None:
    with patch("sys.argv", ["mkvbatch-cli", *argv]):
        main()


class TestAssemble:
    def test_writes_jobs(self, session_file: Path, tmp_path: Path, capsys) -> None:
        output = tmp_path / "jobs.json"

        _run("assemble", str(session_file), "-o", str(output))

        jobs = json.loads(output.read_text(encoding="utf-8"))
        assert [j["id"] for j in jobs] == ["job-v1"]
        assert [s["sourceId"] for s in jobs[0]["subtitles"]] == ["s1"]
        assert "unmatched: other.srt" in capsys.readouterr().err

    def test_missing_session(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _run("assemble", str(tmp_path / "nope.json"))
        assert exc_info.value.code == 1


class TestPreview:
    def test_requires_destination(self, session_file: Path, capsys) -> None:
        with patch("mkvbatch.cli.settings.destination_dir", None), patch(
            "mkvbatch.cli.settings.overwrite_source", False
        ):
            with pytest.raises(SystemExit) as exc_info:
                _run("preview", str(session_file))

        assert exc_info.value.code == 1
        assert "destination folder" in capsys.readouterr().err

    def test_reports_warnings(self, session_file: Path, capsys) -> None:
        _run("preview", str(session_file), "--destination", "/out")

        out = capsys.readouterr().out
        assert "job-v1: /out/Ep01.mkv" in out
        assert "Unmatched external file: other.srt" in out


class TestAddTracks:
    def test_adds_configured_slot(self, session_file: Path, tmp_path: Path, capsys) -> None:
        preset = tmp_path / "preset.json"
        preset.write_text(json.dumps({"defaultAudioLanguage": "JPN"}), encoding="utf-8")

        with patch("mkvbatch.cli.FFprobeInspector", _ScanningInspector):
            _run(
                "add-tracks",
                str(session_file),
                "/audio/Ep01.mka",
                "--kind",
                "audio",
                "--preset",
                str(preset),
                "--track-name",
                "Dub",
                "--delay",
                "-0.5",
                "--default",
            )

        saved = json.loads(session_file.read_text(encoding="utf-8"))
        (audio,) = saved["externals"]["audio"]
        assert audio["language"] == "jpn"
        assert audio["trackName"] == "Dub"
        assert audio["delay"] == -0.5
        assert audio["isDefault"] is True
        assert audio["isForced"] is False
        assert audio["matchedVideoId"] == "v1"
        assert audio["source"] == "bulk"
        assert "Ep01.mka -> Ep01.mkv  (name, jpn)" in capsys.readouterr().out

    def test_language_option_beats_preset(self, session_file: Path, tmp_path: Path) -> None:
        preset = tmp_path / "preset.json"
        preset.write_text(json.dumps({"defaultSubtitleLanguage": "fre"}), encoding="utf-8")

        with patch("mkvbatch.cli.FFprobeInspector", _ScanningInspector):
            _run(
                "add-tracks",
                str(session_file),
                "/subs/extra.srt",
                "--kind",
                "subtitle",
                "--preset",
                str(preset),
                "--language",
                "spa",
            )

        saved = json.loads(session_file.read_text(encoding="utf-8"))
        added = saved["externals"]["subtitle"][-1]
        assert added["path"] == "/subs/extra.srt"
        assert added["language"] == "spa"
        assert added["muxAfter"] == "audio"


class TestAggregate:
    def test_prints_rows(self, session_file: Path, capsys) -> None:
        _run("aggregate", str(session_file), "--kind", "audio")

        out = capsys.readouterr().out
        assert "#1" in out
        assert "lang=jpn" in out
        assert "name=Main" in out


def test_no_command_prints_help() -> None:
    with pytest.raises(SystemExit):
        _run()
