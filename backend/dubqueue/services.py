"""
Component wiring shared by the HTTP app and the CLI.
"""

import functools
from typing import Optional

from .compiler import FilterGraphBuilder
from .config import AppConfig
from .execution import RenderExecutor
from .jobs import QueueStore, RenderQueue
from .metadata import probe_media
from .presets import PresetStore


def build_preset_store(config: AppConfig) -> PresetStore:
    return PresetStore(config.presets_dir)


def build_plan_builder(config: AppConfig) -> FilterGraphBuilder:
    return FilterGraphBuilder(probe=functools.partial(probe_media, ffprobe_path=config.ffprobe_path))


def build_executor(config: AppConfig) -> RenderExecutor:
    return RenderExecutor(ffmpeg_path=config.ffmpeg_path, builder=build_plan_builder(config))


def build_queue(config: AppConfig, preset_store: Optional[PresetStore] = None) -> RenderQueue:
    """Create a RenderQueue on the configured storage and load it."""
    queue = RenderQueue(
        store=QueueStore(config.queue_file),
        preset_store=preset_store or build_preset_store(config),
        executor=build_executor(config),
        shutdown_delay_seconds=config.shutdown_delay_seconds,
    )
    queue.load()
    return queue
