"""Tests for the camera registry and its JSON loader."""

import json

import pytest

from webcam_snapshot.errors import ConfigError
from webcam_snapshot.registry import CameraDescriptor, CameraRegistry, load_cameras


def _entry(name: str = "dock", **overrides):
    data = {
        "name": name,
        "url": f"https://example.test/{name}",
        "xpath-to-open-in-full-screen": "//button[@class='fs']",
        "xpath-webcam-container": "//div[@id='player']",
    }
    data.update(overrides)
    return data


@pytest.fixture
def write_config(tmp_path):
    """Write a value as JSON to config.json and return the path."""

    def _write(value) -> object:
        path = tmp_path / "config.json"
        path.write_text(json.dumps(value), encoding="utf-8")
        return path

    return _write


class TestCameraDescriptor:
    """Tests for CameraDescriptor.from_mapping()."""

    def test_maps_config_keys_to_fields(self):
        """Verifies the hyphenated JSON keys land on descriptor fields."""
        camera = CameraDescriptor.from_mapping(_entry())

        assert camera.name == "dock"
        assert camera.url == "https://example.test/dock"
        assert camera.fullscreen_trigger_selector == "//button[@class='fs']"
        assert camera.capture_region_selector == "//div[@id='player']"

    def test_unknown_keys_ignored(self):
        """Verifies extra keys in an entry are not an error."""
        camera = CameraDescriptor.from_mapping(_entry(comment="north side"))
        assert camera.name == "dock"

    @pytest.mark.parametrize(
        "key",
        ["name", "url", "xpath-to-open-in-full-screen", "xpath-webcam-container"],
    )
    def test_missing_key(self, key):
        """Verifies each of the four keys is required."""
        data = _entry()
        del data[key]

        with pytest.raises(ConfigError, match=key):
            CameraDescriptor.from_mapping(data, index=3)

    def test_non_string_value(self):
        """Verifies values must be strings."""
        with pytest.raises(ConfigError, match="must be a string"):
            CameraDescriptor.from_mapping(_entry(url=42))

    def test_non_object_entry(self):
        """Verifies a bare string in the list is rejected with its index."""
        with pytest.raises(ConfigError, match="camera #2"):
            CameraDescriptor.from_mapping("dock", index=2)  # type: ignore[arg-type]


class TestLoadCameras:
    """Tests for load_cameras()."""

    def test_preserves_file_order(self, write_config):
        """Verifies cameras come back in the order they are listed."""
        path = write_config([_entry("c"), _entry("a"), _entry("b")])

        assert [c.name for c in load_cameras(path)] == ["c", "a", "b"]

    def test_empty_list_allowed(self, write_config):
        """Verifies an empty camera list loads (the loop just idles)."""
        assert load_cameras(write_config([])) == ()

    def test_duplicate_names_kept(self, write_config):
        """Verifies duplicate names are not rejected."""
        cameras = load_cameras(write_config([_entry("dock"), _entry("dock")]))
        assert len(cameras) == 2

    def test_missing_file(self, tmp_path):
        """Verifies an unreadable file is a ConfigError."""
        with pytest.raises(ConfigError, match="failed to read config"):
            load_cameras(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        """Verifies malformed JSON is a ConfigError."""
        path = tmp_path / "config.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(ConfigError, match="failed to parse config"):
            load_cameras(path)

    def test_top_level_object_rejected(self, write_config):
        """Verifies the top level must be an array."""
        with pytest.raises(ConfigError, match="expected a JSON array"):
            load_cameras(write_config(_entry()))

    def test_bad_entry_fails_whole_load(self, write_config):
        """Verifies one malformed camera stops startup."""
        with pytest.raises(ConfigError, match="camera #1"):
            load_cameras(write_config([_entry("dock"), {"name": "pier"}]))


class TestCameraRegistry:
    """Tests for CameraRegistry."""

    def test_from_file(self, write_config):
        """Verifies from_file() loads and exposes the cameras."""
        registry = CameraRegistry.from_file(write_config([_entry("dock"), _entry("pier")]))

        assert len(registry) == 2
        assert registry.names() == ["dock", "pier"]
        assert registry[1].name == "pier"
        assert [c.name for c in registry] == ["dock", "pier"]

    def test_iteration_is_repeatable(self):
        """Verifies every cycle sees the same cameras."""
        registry = CameraRegistry([CameraDescriptor.from_mapping(_entry())])

        assert list(registry) == list(registry)

    def test_repr_lists_names(self):
        """Verifies repr shows camera names."""
        registry = CameraRegistry([CameraDescriptor.from_mapping(_entry("dock"))])
        assert repr(registry) == "CameraRegistry(['dock'])"
