from __future__ import annotations

import hashlib
import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence

from reelgraph.config import Settings, get_settings
from reelgraph.models.layer_models import Timeline
from reelgraph.models.render_models import OutputOptions, RenderTarget
from reelgraph.utils.ffmpeg_builder import TimelineToFFmpeg

logger = logging.getLogger(__name__)


def timeline_for_target(timeline: Timeline, target: RenderTarget) -> Timeline:
    timeline = timeline.set_resolution(target.width, target.height)
    if target.frame_rate is not None:
        timeline = timeline.set_frame_rate(target.frame_rate)
    return timeline


def compile_target(
    timeline: Timeline,
    target: RenderTarget,
    source_map: dict[str, str] | None = None,
    settings: Settings | None = None,
) -> str:
    converter = TimelineToFFmpeg(timeline_for_target(timeline, target), source_map, settings)
    return converter.build_command_string(target.options, target.output_path)


def compile_batch(
    timeline: Timeline,
    targets: Sequence[RenderTarget],
    source_map: dict[str, str] | None = None,
    max_workers: int | None = None,
    settings: Settings | None = None,
) -> dict[str, str]:
    """
    Compile one command per target, in parallel.

    Results are keyed by target name, in target order. A failing target
    re-raises its error after the other targets have finished.
    """
    settings = settings or get_settings()
    workers = max(1, max_workers or settings.batch_workers)
    results: dict[str, str] = {}
    errors: dict[str, BaseException] = {}

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(compile_target, timeline, target, source_map, settings): target.name
            for target in targets
        }
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
            except Exception as exc:
                logger.error(f"Batch compile failed for target {name}: {exc}")
                errors[name] = exc

    for target in targets:
        if target.name in errors:
            raise errors[target.name]

    logger.info(f"Compiled {len(targets)} targets with {workers} workers")
    return {target.name: results[target.name] for target in targets}


def cache_key(
    timeline: Timeline, options: OutputOptions | None = None, output_path: str = ""
) -> str:
    """SHA-256 over the canonical JSON of (timeline snapshot, options, output path)."""
    payload = {
        "timeline": timeline.to_snapshot(),
        "options": (options or OutputOptions()).model_dump(mode="json"),
        "output_path": output_path,
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()


class CompileCache:
    """
    Command cache keyed by canonicalized (timeline, options, output path).

    At most one compile runs per key at a time; concurrent callers for the
    same key wait and then read the cached command.
    """

    def __init__(
        self,
        source_map: dict[str, str] | None = None,
        settings: Settings | None = None,
    ):
        self.source_map = source_map
        self.settings = settings
        self._results: dict[str, str] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()
        self.compile_count = 0

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def get_or_compile(
        self,
        timeline: Timeline,
        options: OutputOptions | None = None,
        output_path: str = "output.mp4",
    ) -> str:
        key = cache_key(timeline, options, output_path)
        with self._key_lock(key):
            cached = self._results.get(key)
            if cached is not None:
                return cached
            logger.debug(f"Compile cache miss {key[:12]}")
            command = TimelineToFFmpeg(timeline, self.source_map, self.settings).build_command_string(
                options, output_path
            )
            with self._lock:
                self._results[key] = command
                self.compile_count += 1
            return command

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def clear(self) -> None:
        with self._lock:
            self._results.clear()
            self._key_locks.clear()
