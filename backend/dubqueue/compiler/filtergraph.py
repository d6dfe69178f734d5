"""
Filter graph compiler.

Turns a job's materials, its preset and the logo settings into an
EncodePlan: the ordered encoder inputs, the filter_complex text and the
final video/audio stream labels.

Build order:
    1. Partition materials into timeline (Intro, Video, Outro by index)
       and side channels (Logo, Subtitles, Audio)
    2. Probe timeline entries (soft failure: degraded metadata + warning)
    3. Video: raw stream for a single entry, concat for several
    4. Audio: concat only when every entry has audio, else the first
       entry that has audio, else none
    5. Scale/pad to the preset size
    6. Subtitle burn-in
    7. Logo scale, alpha and overlay
    8. Mix main audio with extra audio tracks
    9. Loudness normalization
   10. Identity shortcut when no filter was needed

Audio concatenation deliberately requires audio on every timeline entry.
A partially silent timeline falls back to a single audio source; missing
segments are not padded with silence.

The builder holds no mutable state. A frozen _GraphState is threaded
through each step and every step returns a new one.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Sequence, Tuple

from ..materials import LogoAnchor, LogoSettings, Material, MaterialType, TIMELINE_TYPES
from ..metadata import MediaProbe, MetadataError, MetadataExtractionError, degraded_probe, probe_media
from ..presets import Preset
from .errors import MissingMainVideoError
from .labels import AUDIO, LOGO, VIDEO, LabelAllocator, input_stream
from .plan import EncodePlan, PlanInput

logger = logging.getLogger(__name__)

LOGO_SCALE_MIN_PERCENT = 1.0
LOGO_SCALE_MAX_PERCENT = 400.0

# Input options for a still-image logo so it lasts for the whole render
LOGO_INPUT_OPTIONS = ("-loop", "1")


@dataclass(frozen=True)
class _TimelineEntry:
    input_index: int
    material: Material
    probe: MediaProbe


@dataclass(frozen=True)
class _GraphState:
    video_label: str
    audio_label: Optional[str] = None
    labels: LabelAllocator = field(default_factory=LabelAllocator)
    steps: Tuple[str, ...] = ()

    def emit(self, step: str, **changes) -> "_GraphState":
        return replace(self, steps=self.steps + (step,), **changes)


def format_number(value: float, decimals: int) -> str:
    """
    Format a number with at most ``decimals`` places and no trailing zeros.

    ``format_number(0.5, 4) == "0.5"``, ``format_number(1.0, 3) == "1"``.
    """
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def escape_filter_path(path: str) -> str:
    """Escape a file path for use inside a quoted filter argument."""
    return path.replace("\\", "\\\\").replace("'", "\\'")


def resolve_logo_position(logo: LogoSettings) -> Tuple[str, str]:
    """
    Overlay coordinates for the logo.

    Manual placement wins over the anchor. Anchored positions are overlay
    expressions where W/H are the main video size and w/h the logo size.
    """
    if logo.use_manual_placement:
        return format_number(logo.manual_x, 3), format_number(logo.manual_y, 3)

    return {
        LogoAnchor.TOP_LEFT: ("0", "0"),
        LogoAnchor.TOP_RIGHT: ("(W-w)", "0"),
        LogoAnchor.BOTTOM_LEFT: ("0", "(H-h)"),
        LogoAnchor.BOTTOM_RIGHT: ("(W-w)", "(H-h)"),
    }[logo.anchor]


def _existing(materials: Sequence[Material], material_type: MaterialType) -> List[Material]:
    return [m for m in materials if m.type == material_type and os.path.isfile(m.path)]


class FilterGraphBuilder:
    """
    Compiles materials + preset + logo settings into an EncodePlan.

    Args:
        probe: Callable returning a MediaProbe for a path. Injected so tests
               do not need ffprobe. Raises MetadataError on failure.
    """

    def __init__(self, probe: Optional[Callable[[str], MediaProbe]] = None):
        self._probe = probe or probe_media

    def compile(
        self,
        materials: Sequence[Material],
        preset: Preset,
        logo: LogoSettings,
    ) -> EncodePlan:
        """
        Compile an encode plan.

        Raises:
            MissingMainVideoError: If there is no Intro, Video or Outro material
        """
        ordered = sorted(materials, key=lambda m: m.index)
        timeline_materials = [m for m in ordered if m.type in TIMELINE_TYPES]
        if not timeline_materials:
            raise MissingMainVideoError()

        warnings: List[str] = []
        timeline = self._probe_timeline(timeline_materials, warnings)

        inputs = [
            PlanInput(path=entry.material.path, role=entry.material.type)
            for entry in timeline
        ]

        logo_materials = _existing(ordered, MaterialType.LOGO)
        logo_index: Optional[int] = None
        if logo_materials:
            logo_index = len(inputs)
            inputs.append(PlanInput(
                path=logo_materials[0].path,
                role=MaterialType.LOGO,
                options=LOGO_INPUT_OPTIONS,
            ))

        extra_audio_indices = []
        for audio in _existing(ordered, MaterialType.AUDIO):
            extra_audio_indices.append(len(inputs))
            inputs.append(PlanInput(path=audio.path, role=MaterialType.AUDIO))

        subtitles = _existing(ordered, MaterialType.SUBTITLES)

        total_duration = sum(entry.probe.duration_seconds for entry in timeline)
        output_width, output_height = self._output_size(preset, timeline)

        state = self._timeline_tracks(timeline)
        state = self._scale_pad(state, preset)
        if subtitles:
            state = self._burn_subtitles(state, subtitles[0].path)
        if logo_index is not None:
            state = self._overlay_logo(state, logo_index, logo)
        state = self._mix_audio(state, extra_audio_indices)
        state = self._normalize_loudness(state, preset)

        if not state.steps and len(inputs) == len(timeline):
            first = timeline[0]
            video_label = f"{first.input_index}:v:0"
            audio_label = f"{first.input_index}:a:0" if first.probe.has_audio else None
        else:
            video_label = state.video_label
            audio_label = state.audio_label
        filter_graph = ";".join(state.steps) if state.steps else None

        logger.info(
            f"[PLAN] {len(inputs)} input(s), {len(state.steps)} filter step(s), "
            f"video={video_label} audio={audio_label} duration={total_duration:.3f}s"
        )

        return EncodePlan(
            inputs=inputs,
            filter_graph=filter_graph,
            video_label=video_label,
            audio_label=audio_label,
            total_duration=total_duration,
            output_width=output_width,
            output_height=output_height,
            warnings=warnings,
        )

    def _probe_timeline(
        self, timeline_materials: Sequence[Material], warnings: List[str]
    ) -> List[_TimelineEntry]:
        entries = []
        for index, material in enumerate(timeline_materials):
            try:
                info = self._probe(material.path)
            except MetadataError as e:
                reason = e.reason if isinstance(e, MetadataExtractionError) else str(e)
                warnings.append(f"ProbeFailure: {material.path}: {reason}")
                logger.warning(f"[PROBE] Degrading metadata for {material.path}: {reason}")
                info = degraded_probe(material.path)
            entries.append(_TimelineEntry(input_index=index, material=material, probe=info))
        return entries

    @staticmethod
    def _output_size(preset: Preset, timeline: Sequence[_TimelineEntry]) -> Tuple[int, int]:
        width = preset.video.width
        if width <= 0:
            width = next((e.probe.width for e in timeline if e.probe.width > 0), 0)
        height = preset.video.height
        if height <= 0:
            height = next((e.probe.height for e in timeline if e.probe.height > 0), 0)
        return width, height

    @staticmethod
    def _timeline_tracks(timeline: Sequence[_TimelineEntry]) -> _GraphState:
        if len(timeline) == 1:
            only = timeline[0]
            audio = input_stream(only.input_index, "a") if only.probe.has_audio else None
            return _GraphState(video_label=input_stream(only.input_index, "v"), audio_label=audio)

        count = len(timeline)
        labels = LabelAllocator()

        video_sources = "".join(input_stream(e.input_index, "v") for e in timeline)
        video_label, labels = labels.next(VIDEO)
        state = _GraphState(video_label=video_label, labels=labels)
        state = state.emit(f"{video_sources}concat=n={count}:v=1:a=0{video_label}")

        if all(e.probe.has_audio for e in timeline):
            audio_sources = "".join(input_stream(e.input_index, "a") for e in timeline)
            audio_label, labels = state.labels.next(AUDIO)
            return state.emit(
                f"{audio_sources}concat=n={count}:v=0:a=1{audio_label}",
                audio_label=audio_label,
                labels=labels,
            )

        fallback = next((e for e in timeline if e.probe.has_audio), None)
        if fallback is not None:
            return replace(state, audio_label=input_stream(fallback.input_index, "a"))
        return state

    @staticmethod
    def _scale_pad(state: _GraphState, preset: Preset) -> _GraphState:
        width, height = preset.video.width, preset.video.height
        if width <= 0 or height <= 0:
            return state

        label, labels = state.labels.next(VIDEO)
        step = (
            f"{state.video_label}scale=w={width}:h={height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2{label}"
        )
        return state.emit(step, video_label=label, labels=labels)

    @staticmethod
    def _burn_subtitles(state: _GraphState, subtitle_path: str) -> _GraphState:
        label, labels = state.labels.next(VIDEO)
        step = f"{state.video_label}subtitles='{escape_filter_path(subtitle_path)}'{label}"
        return state.emit(step, video_label=label, labels=labels)

    @staticmethod
    def _overlay_logo(state: _GraphState, logo_index: int, logo: LogoSettings) -> _GraphState:
        scale_percent = min(max(logo.scale_percent, LOGO_SCALE_MIN_PERCENT), LOGO_SCALE_MAX_PERCENT)
        scale = format_number(scale_percent / 100.0, 4)
        opacity = format_number(min(max(logo.opacity, 0.0), 1.0), 3)

        scaled_label, labels = state.labels.next(LOGO)
        state = state.emit(
            f"{input_stream(logo_index, 'v')}format=rgba,scale=iw*{scale}:ih*{scale}{scaled_label}",
            labels=labels,
        )

        faded_label, labels = state.labels.next(LOGO)
        state = state.emit(
            f"{scaled_label}format=rgba,colorchannelmixer=aa={opacity}{faded_label}",
            labels=labels,
        )

        x, y = resolve_logo_position(logo)
        overlay_label, labels = state.labels.next(VIDEO)
        return state.emit(
            f"{state.video_label}{faded_label}overlay={x}:{y}:format=auto{overlay_label}",
            video_label=overlay_label,
            labels=labels,
        )

    @staticmethod
    def _mix_audio(state: _GraphState, extra_audio_indices: Sequence[int]) -> _GraphState:
        sources = [state.audio_label] if state.audio_label else []
        sources.extend(input_stream(index, "a") for index in extra_audio_indices)

        if not sources:
            return replace(state, audio_label=None)
        if len(sources) == 1:
            return replace(state, audio_label=sources[0])

        label, labels = state.labels.next(AUDIO)
        step = (
            f"{''.join(sources)}amix=inputs={len(sources)}"
            f":duration=longest:dropout_transition=2{label}"
        )
        return state.emit(step, audio_label=label, labels=labels)

    @staticmethod
    def _normalize_loudness(state: _GraphState, preset: Preset) -> _GraphState:
        audio = preset.audio
        if state.audio_label is None or not audio.normalize:
            return state

        label, labels = state.labels.next(AUDIO)
        step = (
            f"{state.audio_label}loudnorm=I={format_number(audio.target_lufs, 2)}"
            f":TP={format_number(audio.true_peak_db, 2)}"
            f":LRA={format_number(audio.lra, 2)}{label}"
        )
        return state.emit(step, audio_label=label, labels=labels)


def compile_plan(
    materials: Sequence[Material],
    preset: Preset,
    logo: LogoSettings,
    probe: Optional[Callable[[str], MediaProbe]] = None,
) -> EncodePlan:
    """Convenience wrapper around FilterGraphBuilder.compile."""
    return FilterGraphBuilder(probe=probe).compile(materials, preset, logo)
