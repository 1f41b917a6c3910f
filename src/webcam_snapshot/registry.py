"""Camera registry loaded from the JSON camera list.

The camera list is a JSON array, one object per camera:

    [
      {
        "name": "dock",
        "url": "https://example.test/stream",
        "xpath-to-open-in-full-screen": "//button[@id='fs']",
        "xpath-webcam-container": "//div[@id='player']"
      }
    ]

It is read once at startup. Any problem with the file is a ``ConfigError``
and stops the process before the first cycle.

Example:
    registry = CameraRegistry.from_file(Path("./data/config.json"))
    for camera in registry:
        print(camera.name, camera.url)
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from webcam_snapshot.errors import ConfigError

#: JSON key -> CameraDescriptor field
CONFIG_KEYS: dict[str, str] = {
    "name": "name",
    "url": "url",
    "xpath-to-open-in-full-screen": "fullscreen_trigger_selector",
    "xpath-webcam-container": "capture_region_selector",
}


@dataclass(frozen=True)
class CameraDescriptor:
    """One capture target.

    Attributes:
        name: Used as the output filename prefix. Not validated for
            filesystem safety.
        url: Page hosting the live stream.
        fullscreen_trigger_selector: XPath of the control that switches
            the player to full-screen/theater mode.
        capture_region_selector: XPath of the element whose rendered
            bounds define the screenshot.
    """

    name: str
    url: str
    fullscreen_trigger_selector: str
    capture_region_selector: str

    @classmethod
    def from_mapping(cls, data: dict[str, Any], index: int = 0) -> CameraDescriptor:
        """Build a descriptor from one camera-list entry.

        Args:
            data: Decoded JSON object. Unknown keys are ignored.
            index: Position in the list, used in error messages.

        Returns:
            CameraDescriptor with all four fields set.

        Raises:
            ConfigError: If ``data`` is not an object or a required key is
                missing or not a string.

        Example:
            >>> CameraDescriptor.from_mapping({
            ...     "name": "dock", "url": "https://example.test/stream",
            ...     "xpath-to-open-in-full-screen": "//button",
            ...     "xpath-webcam-container": "//div",
            ... }).name
            'dock'
        """
        if not isinstance(data, dict):
            raise ConfigError(
                f"camera #{index}: expected an object, got {type(data).__name__}"
            )

        fields: dict[str, str] = {}
        for key, attr in CONFIG_KEYS.items():
            if key not in data:
                raise ConfigError(f"camera #{index}: missing key {key!r}")
            value = data[key]
            if not isinstance(value, str):
                raise ConfigError(
                    f"camera #{index}: {key!r} must be a string, "
                    f"got {type(value).__name__}"
                )
            fields[attr] = value
        return cls(**fields)


def load_cameras(path: Path) -> tuple[CameraDescriptor, ...]:
    """Read and parse the camera list.

    Args:
        path: Location of the JSON camera list.

    Returns:
        Cameras in file order. An empty list is allowed.

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, is not
            a JSON array, or any entry is malformed.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to read config {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"failed to parse config {path}: {e}") from e

    if not isinstance(data, list):
        raise ConfigError(
            f"failed to parse config {path}: expected a JSON array, "
            f"got {type(data).__name__}"
        )

    return tuple(
        CameraDescriptor.from_mapping(entry, index) for index, entry in enumerate(data)
    )


class CameraRegistry:
    """Ordered, read-only list of cameras for the life of the process."""

    def __init__(self, cameras: tuple[CameraDescriptor, ...] | list[CameraDescriptor]) -> None:
        self._cameras = tuple(cameras)

    @classmethod
    def from_file(cls, path: Path) -> CameraRegistry:
        """Load a registry from the JSON camera list (see ``load_cameras``)."""
        return cls(load_cameras(path))

    def __iter__(self) -> Iterator[CameraDescriptor]:
        return iter(self._cameras)

    def __len__(self) -> int:
        return len(self._cameras)

    def __getitem__(self, index: int) -> CameraDescriptor:
        return self._cameras[index]

    def names(self) -> list[str]:
        """Camera names in registry order."""
        return [camera.name for camera in self._cameras]

    def __repr__(self) -> str:
        return f"CameraRegistry({self.names()!r})"
