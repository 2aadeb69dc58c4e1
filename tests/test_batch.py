"""Tests for directory discovery, package scheduling, manifests, and whole-batch runs."""
import json
from pathlib import Path

import pytest

from hls.errors import ProbeError
from hls.ladder import FAST, WEB, plan
from hls.scheduler import Pool
from hls.transcode import (
    MediaInfo,
    Package,
    build_manifest,
    iter_sources,
    package_jobs,
    run_batch,
    schedule_package,
    write_manifest,
)
from hls.utils.constants import STATUS_FAIL, STATUS_OK


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


@pytest.fixture
def source_tree(tmp_path):
    src = tmp_path / "Exports"
    _touch(src / "a.mp4")
    _touch(src / "trip" / "b.mp4")
    _touch(src / "trip" / "broken.mp4")
    _touch(src / "tiny.mp4")
    _touch(src / "notes.txt")
    return src


def fake_probe(path: Path) -> MediaInfo:
    if path.stem == "broken":
        raise ProbeError(path, "moov atom not found")
    if path.stem == "tiny":
        return MediaInfo(path, 320, 180, 5.0, "h264")
    return MediaInfo(path, 1920, 1080, 60.0, "h264", frame_rate=30.0)


class Runner:
    def __init__(self, fail_substring=None):
        self.fail_substring = fail_substring
        self.commands = []

    def __call__(self, job):
        self.commands.append(job.command)
        if self.fail_substring and self.fail_substring in job.label:
            return 1, "error"
        return 0, ""


def test_iter_sources_strips_extension_and_keeps_structure(source_tree):
    pairs = list(iter_sources(source_tree, "**/*.mp4"))
    assert [rel for _, rel in pairs] == [
        Path("a"), Path("tiny"), Path("trip/b"), Path("trip/broken"),
    ]
    assert all(src.is_absolute() and src.suffix == ".mp4" for src, _ in pairs)


def test_iter_sources_ignores_non_video_files(source_tree):
    names = [src.name for src, _ in iter_sources(source_tree, "**/*")]
    assert "notes.txt" not in names
    assert len(names) == 4


def test_iter_sources_missing_root_is_fatal(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(iter_sources(tmp_path / "nope"))


def test_package_jobs_combined_and_split(tmp_path):
    info = MediaInfo(Path("/in/a.mp4"), 1280, 720, 10.0, "h264")
    package = Package.plan(info, tmp_path / "a", WEB)

    combined = package_jobs(package)
    assert [j.label for j in combined] == [
        "a.mp4 hls", "a.mp4 360p poster", "a.mp4 480p poster", "a.mp4 720p poster",
    ]
    assert combined[0].command[-1].endswith("%v/index.m3u8")

    split = package_jobs(package, posters=False, split=True)
    assert [j.label for j in split] == ["a.mp4 360p", "a.mp4 480p", "a.mp4 720p"]
    assert split[2].command[-1] == str(tmp_path / "a" / "720p" / "index.m3u8")


def test_schedule_package_creates_variant_dirs(tmp_path):
    info = MediaInfo(Path("/in/a.mp4"), 1280, 720, 10.0, "h264")
    package = Package.plan(info, tmp_path / "a", WEB)
    runner = Runner()
    pool = Pool(workers=1, runner=runner)

    jobs = schedule_package(pool, package)
    pool.process()

    assert len(jobs) == 4
    assert len(runner.commands) == 4
    for label in ("360p", "480p", "720p"):
        assert (tmp_path / "a" / label).is_dir()


def test_schedule_package_skips_empty_ladder(tmp_path):
    info = MediaInfo(Path("/in/tiny.mp4"), 320, 180, 10.0, "h264")
    package = Package.plan(info, tmp_path / "tiny", WEB)
    pool = Pool(workers=1, runner=Runner())

    assert schedule_package(pool, package) == []
    assert pool.process() == []


def test_build_manifest_reads_written_playlists(tmp_path):
    info = MediaInfo(Path("/in/a.mp4"), 854, 480, 10.0, "h264")
    package = Package(info, tmp_path / "a", plan(854, 480, WEB))
    playlist = "#EXTM3U\n#EXT-X-PLAYLIST-TYPE:VOD\n#EXT-X-ENDLIST\n"
    _touch(tmp_path / "a" / "360p" / "index.m3u8").write_text(playlist)

    manifest = build_manifest(package).to_dict()

    assert manifest["version"] == 1
    assert manifest["renditions"] == [
        {"name": "360p", "width": 640, "height": 360, "bitrate": 500, "playlist": playlist,
         "video": "360p/index.m3u8", "poster": "360p/poster.jpg"},
        {"name": "480p", "width": 854, "height": 480, "bitrate": 1000, "playlist": None,
         "video": "480p/index.m3u8", "poster": "480p/poster.jpg"},
    ]

    path = write_manifest(package)
    assert path == tmp_path / "a" / "manifest.json"
    assert json.loads(path.read_text()) == manifest


def test_build_manifest_records_encoded_size_for_wide_source(tmp_path):
    info = MediaInfo(Path("/in/scope.mp4"), 1920, 800, 10.0, "h264")
    package = Package(info, tmp_path / "scope", plan(1920, 800, WEB))

    renditions = build_manifest(package).to_dict()["renditions"]

    by_name = {r["name"]: (r["width"], r["height"]) for r in renditions}
    assert by_name["1080p"] == (1920, 800)
    assert by_name["720p"] == (1280, 532)
    assert [r["video"] for r in renditions][-1] == "1080p/index.m3u8"


def test_run_batch_isolates_probe_failures(source_tree, tmp_path):
    dest = tmp_path / "Uploads"
    runner = Runner()
    pool = Pool(workers=2, runner=runner)

    report = run_batch(source_tree, dest, WEB, pool, probe=fake_probe)

    assert [p.output for p in report.packages] == [dest / "a", dest / "trip" / "b"]
    assert [e.path.name for e in report.failures] == ["broken.mp4"]
    assert [p.name for p in report.skipped] == ["tiny.mp4"]
    # 1080p source: one encode plus four posters per package
    assert len(report.results) == 10
    assert report.ok == 10
    assert report.failed == 0
    assert (dest / "a" / "manifest.json").exists()
    assert (dest / "trip" / "b" / "1080p").is_dir()
    assert not (dest / "trip" / "broken").exists()


def test_run_batch_reports_failed_jobs_and_skips_their_manifest(source_tree, tmp_path):
    dest = tmp_path / "Uploads"
    pool = Pool(workers=3, runner=Runner(fail_substring="b.mp4 hls"))

    report = run_batch(source_tree, dest, FAST, pool, probe=fake_probe)

    statuses = {r.job.label: r.status for r in report.results}
    assert statuses["b.mp4 hls"] == STATUS_FAIL
    assert statuses["a.mp4 hls"] == STATUS_OK
    assert report.failed == 1
    assert (dest / "a" / "manifest.json").exists()
    assert not (dest / "trip" / "b" / "manifest.json").exists()


def test_run_batch_dry_run_writes_no_manifests(source_tree, tmp_path):
    dest = tmp_path / "Uploads"
    runner = Runner()
    pool = Pool(workers=2, runner=runner, dry_run=True)

    report = run_batch(source_tree, dest, FAST, pool, probe=fake_probe, posters=False)

    assert runner.commands == []
    assert report.dry_run == 2
    assert not (dest / "a" / "manifest.json").exists()
