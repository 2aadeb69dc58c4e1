"""Tests for the hlsify command-line driver with the engine and batch stubbed out."""
import signal
import threading

import pytest

import hlsify
from hls.ladder import AUTO
from hls.scheduler import Pool
from hls.transcode import BatchReport
from hls.utils import LogLevel, logger


@pytest.fixture(autouse=True)
def isolate(monkeypatch):
    level = logger.get_log_level()
    monkeypatch.setattr(hlsify.hls_module, "DEBUG", False)
    monkeypatch.setattr(hlsify.signal, "signal", lambda *args: None)
    monkeypatch.setattr(hlsify.system_util, "which_or_die", lambda binary: None)
    monkeypatch.setattr(hlsify.transcode, "select_encoder", lambda preferred=None: preferred or "libx264")
    yield
    logger.set_log_level(level)


def test_parser_defaults():
    args = hlsify.build_parser().parse_args(["src", "dst"])
    assert args.preset == "web"
    assert args.workers >= 1
    assert not args.split
    assert not args.dry_run


def test_missing_source_exits_with_config_error(tmp_path):
    with pytest.raises(SystemExit) as exc:
        hlsify.main([str(tmp_path / "missing"), str(tmp_path / "out")])
    assert exc.value.code == 2


def test_main_wires_options_into_batch(tmp_path, monkeypatch):
    src = tmp_path / "src"
    src.mkdir()
    seen = {}

    def fake_run_batch(source_root, dest_root, strategy, pool, **kwargs):
        seen.update(source=source_root, dest=dest_root, strategy=strategy, pool=pool, **kwargs)
        pool.process()
        return BatchReport()

    monkeypatch.setattr(hlsify.transcode, "run_batch", fake_run_batch)

    hlsify.main([str(src), str(tmp_path / "out"), "--preset", "auto", "--workers", "2",
                 "--encoder", "h264_nvenc", "--split", "--no-posters", "--dry-run", "--debug"])

    assert seen["source"] == src.resolve()
    assert seen["strategy"] is AUTO
    assert seen["pool"].workers == 2
    assert seen["pool"].dry_run
    assert seen["settings"].video_codec == "h264_nvenc"
    assert seen["split"] is True
    assert seen["posters"] is False
    assert (tmp_path / "out").is_dir()
    assert logger.get_log_level() is LogLevel.DEBUG


def test_failures_set_exit_status(tmp_path, monkeypatch):
    src = tmp_path / "src"
    src.mkdir()

    def fake_run_batch(source_root, dest_root, strategy, pool, **kwargs):
        pool.process()
        report = BatchReport()
        report.failures.append(RuntimeError("probe"))
        return report

    monkeypatch.setattr(hlsify.transcode, "run_batch", fake_run_batch)
    with pytest.raises(SystemExit) as exc:
        hlsify.main([str(src), str(tmp_path / "out")])
    assert exc.value.code == 1


def test_signal_handler_drains_then_terminates(monkeypatch):
    calls = []

    class FakePool:
        def request_shutdown(self, terminate=False):
            calls.append(terminate)

    monkeypatch.setattr(hlsify, "_pool", FakePool())
    monkeypatch.setattr(hlsify, "_interrupts", 0)
    hlsify._signal_handler(signal.SIGINT, None)
    hlsify._signal_handler(signal.SIGINT, None)
    assert calls == [False, True]


def test_signal_handler_returns_while_pool_and_log_locks_are_held(monkeypatch):
    pool = Pool(workers=1, runner=lambda job: (0, ""))
    monkeypatch.setattr(hlsify, "_pool", pool)
    monkeypatch.setattr(hlsify, "_interrupts", 0)
    monkeypatch.setattr(hlsify, "_interrupt_info", {})

    # The handler interrupts whatever the main thread was doing, locks included.
    handler = threading.Thread(target=hlsify._signal_handler, args=(signal.SIGINT, None), daemon=True)
    with pool._lock, logger._print_lock:
        handler.start()
        handler.join(2)
        assert not handler.is_alive()

    assert pool.stopping
    assert hlsify._interrupt_info["signal"] == signal.SIGINT
    assert pool.process() == []
