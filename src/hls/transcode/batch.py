"""
This module turns a directory of source videos into scheduled HLS jobs.

Sources are discovered under a root folder, probed, planned into packages
that mirror the folder structure under the destination root, and handed to
a worker pool as encode and poster jobs. A source that cannot be probed or
planned is recorded and skipped; it never stops the rest of the batch.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List, Tuple

from tqdm import tqdm

from hls.errors import HLSError, PlanningError, ProbeError
from hls.ladder import LadderStrategy
from hls.scheduler import Job, JobResult, Pool
from hls.transcode import core
from hls.transcode.command import (
    DEFAULT_SETTINGS,
    EncodeSettings,
    Package,
    build_encode_command,
    build_poster_command,
    build_variant_command,
)
from hls.transcode.manifest import build_manifest
from hls.utils import LogLevel, logger
from hls.utils.constants import DEFAULT_GLOB, MANIFEST_FILENAME, STATUS_DRY_RUN, STATUS_SKIP, VIDEO_EXTENSIONS


@dataclass
class BatchReport:
    packages: List[Package] = field(default_factory=list)
    failures: List[HLSError] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    results: List[JobResult] = field(default_factory=list)

    @property
    def ok(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok and r.status != STATUS_SKIP)

    @property
    def discarded(self) -> int:
        return sum(1 for r in self.results if r.status == STATUS_SKIP)

    @property
    def dry_run(self) -> int:
        return sum(1 for r in self.results if r.status == STATUS_DRY_RUN)


def iter_sources(root: Path, pattern: str = DEFAULT_GLOB) -> Iterator[Tuple[Path, Path]]:
    """Yield (absolute input path, output path relative to the destination, extension stripped)."""
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Source directory does not exist: {root}")
    for path in sorted(root.glob(pattern)):
        if not path.is_file() or path.suffix.lower() not in VIDEO_EXTENSIONS:
            continue
        rel = path.relative_to(root)
        yield path.resolve(), rel.with_suffix("")


def package_jobs(package: Package, settings: EncodeSettings = DEFAULT_SETTINGS,
                 posters: bool = True, split: bool = False) -> List[Job]:
    """Build the jobs for one package: the encode (one or per rendition) and a poster per rendition."""
    name = package.input.path.name
    jobs = []
    if split:
        for index, rendition in enumerate(package.ladder):
            jobs.append(Job.of(build_variant_command(package, index, settings), f"{name} {rendition.label}"))
    else:
        jobs.append(Job.of(build_encode_command(package, settings), f"{name} hls"))

    if posters:
        for index, rendition in enumerate(package.ladder):
            cmd = build_poster_command(package.input, package.variant_dir(index),
                                       rendition.width, rendition.height)
            jobs.append(Job.of(cmd, f"{name} {rendition.label} poster"))
    return jobs


def schedule_package(pool: Pool, package: Package, settings: EncodeSettings = DEFAULT_SETTINGS,
                     posters: bool = True, split: bool = False) -> List[Job]:
    """Create the package's output folders and queue its jobs; returns the jobs the pool accepted."""
    if not package.ladder:
        logger.log("batch.empty_ladder", LogLevel.WARN,
                   file=package.input.path.name,
                   res=package.input.resolution,
                   msg="Source is narrower than every rendition")
        return []

    for variant in package.variant_dirs:
        variant.mkdir(parents=True, exist_ok=True)

    return [job for job in package_jobs(package, settings, posters, split) if pool.schedule(job)]


def write_manifest(package: Package) -> Path:
    path = package.output / MANIFEST_FILENAME
    manifest = build_manifest(package)
    path.write_text(json.dumps(manifest.to_dict(), indent=2), encoding="utf-8")
    logger.log("manifest.written", LogLevel.DEBUG, path=str(path), renditions=len(manifest.renditions))
    return path


def run_batch(source_root: Path, dest_root: Path, strategy: LadderStrategy, pool: Pool,
              settings: EncodeSettings = DEFAULT_SETTINGS, pattern: str = DEFAULT_GLOB,
              posters: bool = True, split: bool = False, manifests: bool = True,
              probe: Callable[[Path], core.MediaInfo] = core.ffprobe_media_info) -> BatchReport:
    """
    Probe, plan, and encode every source under ``source_root``.

    Blocks until the pool has drained, then writes a manifest for each
    package whose jobs all succeeded.

    Raises:
        FileNotFoundError: If ``source_root`` is not a directory.
    """
    dest_root = Path(dest_root)
    report = BatchReport()
    sources = list(iter_sources(source_root, pattern))
    logger.log("batch.start", LogLevel.INFO, files=len(sources), strategy=strategy.name,
               workers=pool.workers, encoder=settings.video_codec)

    scheduled: dict[Path, List[Job]] = {}
    for input_path, rel in tqdm(sources, desc="Planning packages"):
        if pool.stopping:
            break
        try:
            info = probe(input_path)
            package = Package.plan(info, dest_root / rel, strategy)
        except ProbeError as e:
            logger.log("probe.failed", LogLevel.ERROR, file=str(input_path), error=e.reason)
            report.failures.append(e)
            continue
        except PlanningError as e:
            logger.log("plan.failed", LogLevel.ERROR, file=str(input_path), error=str(e))
            report.failures.append(e)
            continue

        jobs = schedule_package(pool, package, settings, posters, split)
        if not jobs:
            report.skipped.append(input_path)
            continue
        report.packages.append(package)
        scheduled[package.output] = jobs
        logger.log("batch.package", LogLevel.INFO, file=input_path.name, output=str(package.output),
                   renditions=",".join(package.ladder.labels), jobs=len(jobs))

    report.results = pool.process()

    if manifests and not pool.dry_run:
        succeeded = {r.job for r in report.results if r.ok}
        for package in report.packages:
            if all(job in succeeded for job in scheduled[package.output]):
                write_manifest(package)

    logger.log("batch.end", LogLevel.INFO, packages=len(report.packages), ok=report.ok,
               failed=report.failed, discarded=report.discarded,
               probe_failures=len(report.failures), skipped=len(report.skipped))
    return report
