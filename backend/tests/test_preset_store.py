"""
Tests for the directory-backed preset store.
"""

import pytest

from dubqueue.presets import (
    Container,
    GeneralSettings,
    InvalidPresetNameError,
    Preset,
    PresetNotFoundError,
    PresetStore,
    VideoCodec,
    VideoSettings,
    sanitize_preset_name,
)


@pytest.fixture
def store(tmp_path):
    return PresetStore(tmp_path / "presets")


def test_save_and_load(store):
    preset = Preset(name="Web 1080p", video=VideoSettings(codec=VideoCodec.H264, crf=23))
    path = store.save(preset)

    assert path.name == "Web 1080p.json"
    assert store.load("Web 1080p") == preset


def test_list_names_sorted_case_insensitively(store):
    for name in ("beta", "Alpha", "gamma"):
        store.save(Preset(name=name))
    assert store.list_names() == ["Alpha", "beta", "gamma"]


def test_list_missing_directory(store):
    assert store.list_names() == []


def test_loaded_preset_carries_requested_name(store):
    store.save(Preset(name="Archive"))
    store.path_for("Copy").write_text(store.path_for("Archive").read_text())

    assert store.load("Copy").name == "Copy"


def test_unsafe_names_are_sanitized(store):
    assert sanitize_preset_name('a/b:c*?"<>|') == "a_b_c______"
    path = store.save(Preset(name="4K: master"))
    assert path.name == "4K_ master.json"
    assert store.get("4K: master").general == GeneralSettings()


def test_missing_preset(store):
    assert store.get("nope") is None
    with pytest.raises(PresetNotFoundError):
        store.load("nope")


def test_corrupt_preset_is_missing(store):
    store.directory.mkdir(parents=True)
    store.path_for("Broken").write_text("{")
    assert store.get("Broken") is None


def test_blank_name_rejected(store):
    with pytest.raises(InvalidPresetNameError):
        store.save(Preset(name="  "))


def test_overwrite_and_delete(store):
    store.save(Preset(name="Delivery"))
    store.save(Preset(name="Delivery", general=GeneralSettings(container=Container.MOV)))

    assert store.load("Delivery").container_extension == ".mov"
    assert store.delete("Delivery") is True
    assert store.delete("Delivery") is False
    assert store.list_names() == []
