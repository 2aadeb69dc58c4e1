"""
Batch HLS packaging: probe, plan, and encode every video under a folder.

Each source ``SRC/a/b.mp4`` becomes an HLS package under ``DEST/a/b/`` with a
master playlist, one subfolder per rendition, posters, and a manifest.
"""

import argparse
import os
import signal
import sys
import time
from pathlib import Path

import hls as hls_module
from hls import ladder, transcode
from hls.errors import PlanningError
from hls.scheduler import Pool
from hls.utils import LogLevel, logger, system_util, time_util
from hls.utils.constants import DEFAULT_GLOB, JOB_TIMEOUT, LOG_LEVEL, VIDEO_ENCODER, WORKERS

# Pool reference for graceful shutdown
_pool: Pool | None = None
_interrupts: int = 0
_interrupt_info: dict = {}


def _signal_handler(signum, frame):
    """First signal drains the pool; a second one also stops running ffmpeg processes.

    Runs on the main thread, which may be holding the pool or logger locks,
    so it only sets flags. The pool applies them and logs from process().
    """
    global _interrupts
    _interrupts += 1
    pool = _pool
    if pool is None:
        sys.exit(130)

    _interrupt_info["signal"] = signum
    if hls_module.DEBUG and frame is not None:
        _interrupt_info["at"] = f"{frame.f_globals.get('__name__', '?')}.{frame.f_code.co_name}:{frame.f_lineno}"
    pool.request_shutdown(terminate=_interrupts > 1)


def _log_interrupt() -> None:
    try:
        sig_name = signal.Signals(_interrupt_info["signal"]).name
    except (KeyError, ValueError):
        sig_name = str(_interrupt_info.get("signal"))
    logger.log("batch.interrupt", LogLevel.WARN, signal=sig_name, count=_interrupts,
               terminate=_interrupts > 1, at=_interrupt_info.get("at"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Package source videos as adaptive-bitrate HLS with ffmpeg.",
        epilog="Example: hlsify ~/Exports ~/Uploads --preset web --workers 3",
    )
    parser.add_argument("source", help="Folder containing source videos")
    parser.add_argument("destination", help="Folder where HLS packages are written")
    parser.add_argument("--preset", default="web", choices=sorted(ladder.PRESETS),
                        help="Rendition ladder (default: web)")
    parser.add_argument("--glob", default=DEFAULT_GLOB, help=f"Source file pattern (default: {DEFAULT_GLOB})")
    parser.add_argument("--workers", type=int, default=WORKERS,
                        help="Concurrent ffmpeg jobs (default: CPU count - 1, or $HLS_WORKERS)")
    parser.add_argument("--encoder", default=VIDEO_ENCODER,
                        help="FFmpeg video encoder (e.g. libx264, h264_videotoolbox, h264_nvenc). "
                             "Defaults to best available for your OS.")
    parser.add_argument("--tune", default="film", help="libx264 content tuning (default: film)")
    parser.add_argument("--split", action="store_true",
                        help="Encode each rendition as its own job instead of one multi-variant job")
    parser.add_argument("--no-posters", action="store_true", help="Do not extract poster frames")
    parser.add_argument("--timeout", type=float, default=JOB_TIMEOUT,
                        help="Kill a job after this many seconds (default: no limit, or $HLS_JOB_TIMEOUT)")
    parser.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {hls_module.__version__}")
    return parser


def main(argv=None):
    global _pool
    args = build_parser().parse_args(argv)

    hls_module.DEBUG = args.debug
    if args.debug:
        logger.set_log_level(LogLevel.DEBUG)
    else:
        logger.set_log_level(logger.level_from_name(LOG_LEVEL))

    source_root = Path(args.source).expanduser().resolve()
    dest_root = Path(args.destination).expanduser().resolve()
    if not source_root.is_dir():
        logger.log("startup.error", LogLevel.ERROR, msg="Source directory does not exist", source=str(source_root))
        sys.exit(2)
    if args.workers is not None and args.workers < 1:
        logger.log("startup.error", LogLevel.ERROR, msg="--workers must be at least 1", workers=args.workers)
        sys.exit(2)

    if not args.dry_run:
        system_util.which_or_die("ffmpeg")
    system_util.which_or_die("ffprobe")

    try:
        strategy = ladder.get_preset(args.preset)
    except PlanningError as e:
        logger.log("startup.error", LogLevel.ERROR, msg=str(e))
        sys.exit(2)

    settings = transcode.EncodeSettings(
        video_codec=transcode.select_encoder(args.encoder),
        tune=args.tune or None,
    )
    dest_root.mkdir(parents=True, exist_ok=True)

    signal.signal(signal.SIGTERM, _signal_handler)
    signal.signal(signal.SIGINT, _signal_handler)

    start_time = time.time()
    logger.log("hlsify.start", LogLevel.INFO, pid=os.getpid(), source=str(source_root),
               destination=str(dest_root), preset=strategy.name, encoder=settings.video_codec,
               workers=args.workers, split=args.split, dry_run=args.dry_run)

    _pool = Pool(workers=args.workers, timeout=args.timeout, dry_run=args.dry_run)
    try:
        report = transcode.run_batch(
            source_root,
            dest_root,
            strategy,
            _pool,
            settings=settings,
            pattern=args.glob,
            posters=not args.no_posters,
            split=args.split,
        )
    except BaseException:
        _pool.shutdown()
        raise
    finally:
        _pool = None

    if _interrupts:
        _log_interrupt()
    logger.log("hlsify.end", LogLevel.INFO, pid=os.getpid(),
               runtime=time_util.format_duration(time.time() - start_time),
               packages=len(report.packages), ok=report.ok, fail=report.failed,
               discarded=report.discarded, probe_failures=len(report.failures),
               skipped=len(report.skipped), dry_run=report.dry_run)

    if report.failed or report.failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
