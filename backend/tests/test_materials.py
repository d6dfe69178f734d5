"""
Tests for material list operations and logo settings.
"""

import pytest
from pydantic import ValidationError

from dubqueue.materials import (
    DEFAULT_LOGO_SETTINGS,
    DuplicateMaterialError,
    LogoAnchor,
    LogoSettings,
    Material,
    MaterialNotFoundError,
    MaterialType,
    attach,
    detach,
    probe_material,
    validate_materials,
)
from dubqueue.metadata import MediaProbe


def material(material_type, path):
    return Material(type=material_type, path=path)


class TestAttach:

    def test_timeline_kept_in_playback_order(self):
        materials = []
        materials = attach(materials, material(MaterialType.OUTRO, "outro.mp4"))
        materials = attach(materials, material(MaterialType.VIDEO, "main.mp4"))
        materials = attach(materials, material(MaterialType.INTRO, "intro.mp4"))

        assert [(m.path, m.index) for m in materials] == [
            ("intro.mp4", 1),
            ("main.mp4", 2),
            ("outro.mp4", 3),
        ]

    def test_singleton_replaced_in_place(self):
        materials = attach([], material(MaterialType.VIDEO, "v1.mp4"))
        materials = attach(materials, material(MaterialType.LOGO, "logo.png"))
        materials = attach(materials, material(MaterialType.VIDEO, "v2.mp4"))

        assert [m.path for m in materials] == ["v2.mp4", "logo.png"]

    def test_audio_tracks_accumulate(self):
        materials = attach([], material(MaterialType.AUDIO, "en.wav"))
        materials = attach(materials, material(MaterialType.AUDIO, "fr.wav"))
        assert [m.index for m in materials] == [1, 2]

    def test_attach_does_not_mutate_input(self):
        original = [material(MaterialType.VIDEO, "main.mp4")]
        attach(original, material(MaterialType.INTRO, "intro.mp4"))
        assert len(original) == 1
        assert original[0].index == 0


class TestDetach:

    def test_detach_renumbers(self):
        materials = attach([], material(MaterialType.VIDEO, "main.mp4"))
        materials = attach(materials, material(MaterialType.AUDIO, "a.wav"))
        materials = attach(materials, material(MaterialType.AUDIO, "b.wav"))

        remaining = detach(materials, 2)

        assert [(m.path, m.index) for m in remaining] == [("main.mp4", 1), ("b.wav", 2)]

    def test_detach_unknown_index(self):
        with pytest.raises(MaterialNotFoundError):
            detach([], 1)


def test_duplicate_singletons_rejected():
    with pytest.raises(DuplicateMaterialError):
        validate_materials([material(MaterialType.LOGO, "a.png"), material(MaterialType.LOGO, "b.png")])
    validate_materials([material(MaterialType.AUDIO, "a.wav"), material(MaterialType.AUDIO, "b.wav")])


class TestProbeMaterial:

    def test_display_metadata(self):
        def probe(path):
            return MediaProbe(
                path=path, duration_seconds=83.45, has_audio=True, has_video=True,
                width=1920, height=1080, frame_rate=30000 / 1001,
                audio_codec="aac", audio_channels=2, audio_sample_rate=48000,
            )

        result = probe_material("main.mp4", MaterialType.VIDEO, index=1, probe=probe)

        assert result.duration == "00:01:23.450"
        assert result.resolution == "1920x1080@29.97"
        assert result.audio_summary == "aac, 2 ch, 48000 Hz"
        assert result.index == 1

    def test_probe_failure_leaves_metadata_empty(self, fake_probe):
        result = probe_material("missing.mp4", MaterialType.VIDEO, probe=fake_probe)
        assert (result.duration, result.resolution, result.audio_summary) == ("", "", "")


class TestLogoSettings:

    def test_defaults(self):
        assert DEFAULT_LOGO_SETTINGS.anchor == LogoAnchor.BOTTOM_RIGHT
        assert DEFAULT_LOGO_SETTINGS.opacity == 1.0
        assert DEFAULT_LOGO_SETTINGS.scale_percent == 100.0

    def test_anchor_and_manual_are_exclusive(self):
        manual = DEFAULT_LOGO_SETTINGS.with_manual_position(10, 20)
        assert manual.use_manual_placement
        anchored = manual.with_anchor(LogoAnchor.TOP_RIGHT)
        assert not anchored.use_manual_placement
        assert anchored.anchor == LogoAnchor.TOP_RIGHT

    def test_opacity_percent_is_clamped(self):
        assert DEFAULT_LOGO_SETTINGS.with_opacity_percent(150).opacity == 1.0
        assert DEFAULT_LOGO_SETTINGS.with_opacity_percent(40).opacity == pytest.approx(0.4)

    def test_snapshots_are_immutable(self):
        with pytest.raises(ValidationError):
            DEFAULT_LOGO_SETTINGS.opacity = 0.2

    def test_scale_must_be_positive(self):
        with pytest.raises(ValidationError):
            LogoSettings(scale_percent=0)
        with pytest.raises(ValidationError):
            DEFAULT_LOGO_SETTINGS.with_scale_percent(-5)
