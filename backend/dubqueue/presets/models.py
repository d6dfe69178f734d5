"""
Encoding preset models.

A Preset is a named, versioned, immutable snapshot of video, audio and
container settings. Identity is the name. Jobs refer to presets by name
and resolve them from the store at run time.

Defaults describe a general purpose 1080p HEVC delivery with loudness
normalized AAC audio.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class VideoCodec(str, Enum):
    H264 = "H264"
    H265 = "H265"
    VP9 = "VP9"
    AV1 = "AV1"


class RateControl(str, Enum):
    """CRF = constant quality, VBR = bitrate target, CBR = bitrate with cap and buffer."""

    CRF = "CRF"
    VBR = "VBR"
    CBR = "CBR"


class HardwareEncoder(str, Enum):
    AUTO = "Auto"
    CPU = "CPU"
    NVENC = "NVENC"
    QSV = "QSV"
    AMF = "AMF"


class PixelFormat(str, Enum):
    YUV420P = "yuv420p"
    YUV422P = "yuv422p"
    YUV444P = "yuv444p"


class Container(str, Enum):
    MP4 = "mp4"
    MKV = "mkv"
    MOV = "mov"


class AudioCodec(str, Enum):
    AAC = "AAC"
    OPUS = "Opus"
    PCM_S16LE = "PCM_S16LE"


class VideoSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    codec: VideoCodec = VideoCodec.H265
    width: int = Field(default=1920, ge=0)
    height: int = Field(default=1080, ge=0)
    fps: float = Field(default=30.0, gt=0)
    pixel_format: PixelFormat = PixelFormat.YUV420P

    rate_control: RateControl = RateControl.CRF
    crf: int = Field(default=20, ge=0, le=63)
    bitrate_kbps: int = Field(default=8000, gt=0)
    two_pass: bool = False

    profile: str = "auto"
    level: str = "auto"
    hardware: HardwareEncoder = HardwareEncoder.AUTO


class AudioSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    codec: AudioCodec = AudioCodec.AAC
    bitrate_kbps: int = Field(default=320, gt=0)
    sample_rate: int = Field(default=48000, gt=0)
    channels: int = Field(default=2, gt=0)

    normalize: bool = True
    target_lufs: float = -14.0
    true_peak_db: float = -1.5
    lra: float = 11.0


class GeneralSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    container: Container = Container.MP4
    fast_start: bool = True
    file_name_pattern: str = "{title}_{date:yyyyMMdd_HHmm}.mp4"
    full_color_range: bool = False


class Preset(BaseModel):
    """
    A named encoding preset.

    Presets are snapshots. Editing a preset means saving a new snapshot
    under the same name; queued jobs pick it up when they run.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = "Preset 1"
    version: int = 1
    video: VideoSettings = Field(default_factory=VideoSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    general: GeneralSettings = Field(default_factory=GeneralSettings)

    @property
    def container_extension(self) -> str:
        """Output file extension including the dot, e.g. ".mp4"."""
        return "." + self.general.container.value

    def renamed(self, name: str) -> "Preset":
        return self.model_copy(update={"name": name})
