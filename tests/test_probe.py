"""Tests for ffprobe parsing and encoder selection; ffprobe itself is never run."""
import json
from pathlib import Path

import pytest

from hls.errors import ProbeError
from hls.transcode import core


def _fake_run(code=0, out="", err=""):
    calls = []

    def run_cmd(cmd):
        calls.append(list(cmd))
        return code, out, err

    run_cmd.calls = calls
    return run_cmd


def _probe_json(stream=None, duration="12.5", extra=()):
    streams = [dict(stream, codec_type="video")] if stream is not None else []
    data = {"streams": streams + list(extra), "format": {}}
    if duration is not None:
        data["format"]["duration"] = duration
    return json.dumps(data)


GOOD_STREAM = {
    "codec_name": "h264",
    "width": 1920,
    "height": 1080,
    "r_frame_rate": "30000/1001",
    "bit_rate": "8000000",
}


def test_probe_parses_stream_and_duration(monkeypatch):
    fake = _fake_run(out=_probe_json(GOOD_STREAM))
    monkeypatch.setattr(core.system_util, "run_cmd", fake)

    info = core.ffprobe_media_info(Path("/videos/a.mp4"))

    assert info.path == Path("/videos/a.mp4")
    assert (info.width, info.height) == (1920, 1080)
    assert info.codec == "h264"
    assert info.duration == 12.5
    assert info.frame_rate == pytest.approx(29.97, abs=0.01)
    assert info.bit_rate == 8000000
    assert fake.calls[0][0] == "ffprobe"
    assert fake.calls[0][-1] == "/videos/a.mp4"


AUDIO_STREAM = {"codec_type": "audio", "codec_name": "aac"}
COVER_ART = {"codec_type": "video", "codec_name": "mjpeg", "width": 600, "height": 600,
             "disposition": {"attached_pic": 1}}


def test_audio_stream_is_detected(monkeypatch):
    monkeypatch.setattr(core.system_util, "run_cmd",
                        _fake_run(out=_probe_json(GOOD_STREAM, extra=[AUDIO_STREAM])))
    assert core.ffprobe_media_info(Path("a.mp4")).has_audio


def test_source_without_audio_stream(monkeypatch):
    monkeypatch.setattr(core.system_util, "run_cmd", _fake_run(out=_probe_json(GOOD_STREAM)))
    assert not core.ffprobe_media_info(Path("screen.mp4")).has_audio


def test_cover_art_and_leading_audio_are_skipped(monkeypatch):
    out = json.dumps({
        "streams": [AUDIO_STREAM, COVER_ART, dict(GOOD_STREAM, codec_type="video")],
        "format": {"duration": "3.0"},
    })
    monkeypatch.setattr(core.system_util, "run_cmd", _fake_run(out=out))

    info = core.ffprobe_media_info(Path("album.mp4"))
    assert (info.codec, info.width, info.height) == ("h264", 1920, 1080)
    assert info.has_audio


def test_probe_tolerates_missing_optional_fields(monkeypatch):
    stream = {"codec_name": "vp9", "width": 640, "height": 360, "r_frame_rate": "0/0"}
    monkeypatch.setattr(core.system_util, "run_cmd", _fake_run(out=_probe_json(stream)))

    info = core.ffprobe_media_info(Path("b.webm"))
    assert info.frame_rate is None
    assert info.bit_rate is None


@pytest.mark.parametrize("code,out", [
    (1, ""),
    (0, "not json"),
    (0, "[]"),
    (0, _probe_json(None)),
    (0, _probe_json(None, extra=[AUDIO_STREAM])),
    (0, _probe_json(None, extra=[COVER_ART])),
    (0, _probe_json({"codec_name": "h264", "height": 1080})),
    (0, _probe_json({"codec_name": "h264", "width": 0, "height": 1080})),
    (0, _probe_json({"width": 1920, "height": 1080})),
    (0, _probe_json(GOOD_STREAM, duration=None)),
    (0, _probe_json(GOOD_STREAM, duration="N/A")),
])
def test_probe_errors_are_not_defaulted(monkeypatch, code, out):
    monkeypatch.setattr(core.system_util, "run_cmd", _fake_run(code=code, out=out, err="boom"))
    with pytest.raises(ProbeError) as exc:
        core.ffprobe_media_info(Path("bad.mp4"))
    assert exc.value.path == Path("bad.mp4")


def test_probe_reports_missing_binary(monkeypatch):
    def run_cmd(cmd):
        raise FileNotFoundError("ffprobe")

    monkeypatch.setattr(core.system_util, "run_cmd", run_cmd)
    with pytest.raises(ProbeError):
        core.ffprobe_media_info(Path("a.mp4"))


def test_media_info_rejects_non_positive_size():
    with pytest.raises(ValueError):
        core.MediaInfo(Path("a.mp4"), 0, 1080, 1.0, "h264")


ENCODERS_OUTPUT = """Encoders:
 V..... = Video
 ------
 V....D libx264              libx264 H.264 / AVC / MPEG-4 AVC
 V....D h264_videotoolbox    VideoToolbox H.264 Encoder
 A....D aac                  AAC (Advanced Audio Coding)
"""


@pytest.fixture
def encoders(monkeypatch):
    core.available_ffmpeg_encoders.cache_clear()
    monkeypatch.setattr(core.system_util, "run_cmd", _fake_run(out=ENCODERS_OUTPUT))
    yield
    core.available_ffmpeg_encoders.cache_clear()


def test_available_encoders_lists_video_encoders(encoders):
    listed = core.available_ffmpeg_encoders()
    assert "libx264" in listed
    assert "h264_videotoolbox" in listed
    assert "aac" not in listed


def test_select_encoder_honors_available_preference(encoders):
    assert core.select_encoder("h264_videotoolbox") == "h264_videotoolbox"


def test_select_encoder_falls_back_by_platform(encoders, monkeypatch):
    monkeypatch.setattr(core.platform, "system", lambda: "Darwin")
    assert core.select_encoder("h264_nvenc") == "h264_videotoolbox"
    monkeypatch.setattr(core.platform, "system", lambda: "Linux")
    assert core.select_encoder() == "libx264"


def test_is_hardware_encoder():
    assert core.is_hardware_encoder("hevc_nvenc")
    assert not core.is_hardware_encoder("libx264")
    assert not core.is_hardware_encoder("libx265")
