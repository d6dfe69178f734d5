"""
Preset to ffmpeg option translation.

Video codec selection is a table keyed by (hardware target, codec). Each
hardware target also has a fallback encoder for codecs it has no entry for.
Disabling GPU acceleration on a job forces the CPU table.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from ..compiler import EncodePlan, format_number
from ..presets import AudioCodec, Container, HardwareEncoder, Preset, RateControl, VideoCodec

logger = logging.getLogger(__name__)


VIDEO_ENCODERS: Dict[Tuple[HardwareEncoder, VideoCodec], str] = {
    (HardwareEncoder.NVENC, VideoCodec.H265): "hevc_nvenc",
    (HardwareEncoder.NVENC, VideoCodec.AV1): "av1_nvenc",
    (HardwareEncoder.QSV, VideoCodec.H265): "hevc_qsv",
    (HardwareEncoder.QSV, VideoCodec.AV1): "av1_qsv",
    (HardwareEncoder.AMF, VideoCodec.H265): "hevc_amf",
    (HardwareEncoder.CPU, VideoCodec.H265): "libx265",
    (HardwareEncoder.CPU, VideoCodec.VP9): "libvpx-vp9",
    (HardwareEncoder.CPU, VideoCodec.AV1): "libaom-av1",
}

# Encoder used when a hardware target has no entry for the codec
VIDEO_ENCODER_FALLBACKS: Dict[HardwareEncoder, str] = {
    HardwareEncoder.NVENC: "h264_nvenc",
    HardwareEncoder.QSV: "h264_qsv",
    HardwareEncoder.AMF: "h264_amf",
    HardwareEncoder.CPU: "libx264",
}

AUDIO_ENCODERS: Dict[AudioCodec, str] = {
    AudioCodec.AAC: "aac",
    AudioCodec.OPUS: "libopus",
    AudioCodec.PCM_S16LE: "pcm_s16le",
}

CONTAINER_FORMATS: Dict[Container, str] = {
    Container.MP4: "mp4",
    Container.MKV: "matroska",
    Container.MOV: "mov",
}

_RAW_STREAM = re.compile(r"^\[(\d+):([va])\]$")


def select_video_encoder(codec: VideoCodec, hardware: HardwareEncoder, gpu_acceleration: bool = True) -> str:
    """Resolve the ffmpeg video encoder name."""
    target = hardware
    if not gpu_acceleration or hardware == HardwareEncoder.AUTO:
        target = HardwareEncoder.CPU
    return VIDEO_ENCODERS.get((target, codec), VIDEO_ENCODER_FALLBACKS[target])


def build_video_options(preset: Preset, gpu_acceleration: bool = True) -> List[str]:
    video = preset.video
    options = [
        "-c:v", select_video_encoder(video.codec, video.hardware, gpu_acceleration),
        "-pix_fmt", video.pixel_format.value,
        "-r", format_number(video.fps, 3),
    ]

    if video.rate_control == RateControl.CRF:
        options += ["-crf", str(video.crf)]
    elif video.rate_control == RateControl.VBR:
        options += ["-b:v", f"{video.bitrate_kbps}k"]
    elif video.rate_control == RateControl.CBR:
        options += [
            "-b:v", f"{video.bitrate_kbps}k",
            "-maxrate", f"{video.bitrate_kbps}k",
            "-bufsize", f"{video.bitrate_kbps * 2}k",
        ]

    if video.two_pass:
        logger.debug("[FFmpeg] Two-pass requested; rendering single pass")

    if video.profile and video.profile.lower() != "auto":
        options += ["-profile:v", video.profile]
    if video.level and video.level.lower() != "auto":
        options += ["-level:v", video.level]

    return options


def build_audio_options(preset: Preset, has_audio: bool) -> List[str]:
    if not has_audio:
        return ["-an"]

    audio = preset.audio
    return [
        "-c:a", AUDIO_ENCODERS[audio.codec],
        "-b:a", f"{audio.bitrate_kbps}k",
        "-ar", str(audio.sample_rate),
        "-ac", str(audio.channels),
    ]


def build_general_options(preset: Preset) -> List[str]:
    general = preset.general
    options = ["-f", CONTAINER_FORMATS[general.container]]
    if general.fast_start:
        options += ["-movflags", "+faststart"]
    if general.full_color_range:
        options += ["-color_range", "2"]
    return options


def build_encoder_options(preset: Preset, has_audio: bool, gpu_acceleration: bool = True) -> List[str]:
    """
    Translate a preset into output options.

    Args:
        preset: Resolved preset
        has_audio: Whether the plan produces an audio stream
        gpu_acceleration: False forces software encoders

    Returns:
        Output options in ffmpeg argv form (video, audio, then container)
    """
    return (
        build_video_options(preset, gpu_acceleration)
        + build_audio_options(preset, has_audio)
        + build_general_options(preset)
    )


def map_argument(label: str) -> str:
    """
    Value for ``-map``.

    Filter outputs ("[v3]") and stream specifiers ("0:v:0") pass through.
    A raw input reference ("[1:a]") is not a filter output, so it becomes
    the stream specifier "1:a:0".
    """
    match = _RAW_STREAM.match(label)
    if match:
        return f"{match.group(1)}:{match.group(2)}:0"
    return label


def build_command(plan: EncodePlan, preset: Preset, job, ffmpeg_path: Optional[str] = "ffmpeg") -> List[str]:
    """
    Assemble the full encoder argv for one job.

    Args:
        plan: Compiled encode plan
        preset: Resolved preset
        job: Object with ``output_path`` and ``gpu_acceleration``
        ffmpeg_path: Encoder binary

    Returns:
        argv list suitable for subprocess.Popen
    """
    cmd = [ffmpeg_path or "ffmpeg", "-y", "-hide_banner", "-nostats", "-progress", "pipe:1"]

    for plan_input in plan.inputs:
        cmd += list(plan_input.options)
        cmd += ["-i", plan_input.path]

    if plan.filter_graph:
        cmd += ["-filter_complex", plan.filter_graph]

    cmd += ["-map", map_argument(plan.video_label)]
    if plan.audio_label:
        cmd += ["-map", map_argument(plan.audio_label)]

    cmd += build_encoder_options(preset, plan.has_audio, job.gpu_acceleration)
    cmd.append(job.output_path)
    return cmd
