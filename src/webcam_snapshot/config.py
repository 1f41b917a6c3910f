"""Process configuration.

Every option can be given as a command-line flag or an environment
variable; flags win over the environment, the environment wins over the
defaults. The result is an immutable ``AppConfig`` built once in
``cli.main()`` and handed to the components that need it.
"""

from __future__ import annotations

import argparse
import os
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from webcam_snapshot.errors import ConfigError

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_CONFIG_PATH = "./data/config.json"
DEFAULT_CAPTURE_DELAY_FROM = 280
DEFAULT_CAPTURE_DELAY_TO = 300
DEFAULT_SAVE_PATH = "./data/webcam-screenshots"
DEFAULT_FONT_PATH = "./data/Roboto-Bold.ttf"
DEFAULT_WATERMARK_TIMEZONE = "Europe/Moscow"
DEFAULT_PROFILE_HOST = "127.0.0.1"
DEFAULT_PROFILE_PORT = 8080

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class FinishingOptions:
    """Fixed parameters of the image finishing pipeline.

    Attributes:
        quality: JPEG quality of the final file (1-100).
        compression: Compression effort 0-9. Used as the PNG level when
            the watermarked intermediate is written; any value above zero
            also turns on JPEG Huffman optimisation.
        auto_orient: Apply EXIF orientation when reading the intermediate.
        font_size: Watermark font size in points.
        text_color: Watermark RGB colour.
        anchor_x: Horizontal anchor as a fraction of image width.
        anchor_y: Vertical anchor as a fraction of image height.
        intermediate_extension: Lossless intermediate file extension.
        final_extension: Lossy final file extension.
    """

    quality: int = 70
    compression: int = 9
    auto_orient: bool = False
    font_size: int = 35
    text_color: tuple[int, int, int] = (255, 0, 0)
    anchor_x: float = 0.2
    anchor_y: float = 0.03
    intermediate_extension: str = "png"
    final_extension: str = "jpg"


@dataclass(frozen=True)
class AppConfig:
    """Resolved process configuration.

    Attributes:
        config_path: JSON camera list.
        capture_delay_from: Lower bound (inclusive) of the inter-cycle
            sleep, whole seconds.
        capture_delay_to: Upper bound (exclusive) of the inter-cycle
            sleep, whole seconds.
        save_path: Output directory for finished images.
        font_path: TrueType font for the watermark.
        watermark_timezone: IANA zone the watermark time is rendered in.
        debug: Verbose logging with caller information.
        profile: Serve the diagnostic HTTP endpoint.
        profile_host: Diagnostic endpoint bind address.
        profile_port: Diagnostic endpoint port.
        json_logs: Emit NDJSON log lines instead of text.
    """

    config_path: Path = Path(DEFAULT_CONFIG_PATH)
    capture_delay_from: int = DEFAULT_CAPTURE_DELAY_FROM
    capture_delay_to: int = DEFAULT_CAPTURE_DELAY_TO
    save_path: Path = Path(DEFAULT_SAVE_PATH)
    font_path: Path = Path(DEFAULT_FONT_PATH)
    watermark_timezone: str = DEFAULT_WATERMARK_TIMEZONE
    debug: bool = False
    profile: bool = False
    profile_host: str = DEFAULT_PROFILE_HOST
    profile_port: int = DEFAULT_PROFILE_PORT
    json_logs: bool = False

    def validate(self) -> None:
        """Check option values that argparse cannot.

        Raises:
            ConfigError: If the delay range is negative or empty.
        """
        if self.capture_delay_from < 0:
            raise ConfigError(
                f"capture delay from must be >= 0, got {self.capture_delay_from}"
            )
        if self.capture_delay_from >= self.capture_delay_to:
            raise ConfigError(
                "capture delay from must be less than capture delay to, "
                f"got {self.capture_delay_from} >= {self.capture_delay_to}"
            )
        if not 0 < self.profile_port < 65536:
            raise ConfigError(f"profile port out of range: {self.profile_port}")

    def to_dict(self) -> dict[str, Any]:
        """Plain dict of all options, paths as strings (for startup logging)."""
        return {
            key: str(value) if isinstance(value, Path) else value
            for key, value in asdict(self).items()
        }


def _env_bool(value: str | None) -> bool:
    """Interpret an environment variable as a boolean flag."""
    return value is not None and value.strip().lower() in _TRUE_VALUES


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    """Read an integer environment variable.

    Raises:
        ConfigError: If the variable is set but not an integer.
    """
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def build_parser(environ: Mapping[str, str] | None = None) -> argparse.ArgumentParser:
    """Build the argument parser with environment-derived defaults.

    Args:
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        Parser whose defaults already reflect the environment.

    Raises:
        ConfigError: If an integer environment variable is malformed.
    """
    env = os.environ if environ is None else environ

    parser = argparse.ArgumentParser(
        prog="webcam-snapshot",
        description=(
            "Periodically capture watermarked screenshots of live webcam "
            "streams rendered in a headless browser"
        ),
    )
    parser.add_argument(
        "--config-path",
        type=Path,
        default=Path(env.get("CONFIG_PATH") or DEFAULT_CONFIG_PATH),
        help="Camera list JSON file [env: CONFIG_PATH]",
    )
    parser.add_argument(
        "--capture-delay-from",
        type=int,
        default=_env_int(env, "CAPTURE_DELAY_FROM", DEFAULT_CAPTURE_DELAY_FROM),
        help="Minimum seconds between cycles [env: CAPTURE_DELAY_FROM]",
    )
    parser.add_argument(
        "--capture-delay-to",
        type=int,
        default=_env_int(env, "CAPTURE_DELAY_TO", DEFAULT_CAPTURE_DELAY_TO),
        help="Maximum seconds between cycles, exclusive [env: CAPTURE_DELAY_TO]",
    )
    parser.add_argument(
        "--save-path",
        type=Path,
        default=Path(env.get("SAVE_PATH") or DEFAULT_SAVE_PATH),
        help="Directory for finished images [env: SAVE_PATH]",
    )
    parser.add_argument(
        "--font-path",
        type=Path,
        default=Path(env.get("FONT_PATH") or DEFAULT_FONT_PATH),
        help="Watermark TrueType font [env: FONT_PATH]",
    )
    parser.add_argument(
        "--watermark-timezone",
        type=str,
        default=env.get("WATERMARK_TIMEZONE") or DEFAULT_WATERMARK_TIMEZONE,
        help="IANA timezone of the watermark timestamp [env: WATERMARK_TIMEZONE]",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=_env_bool(env.get("DEBUG")),
        help="Debug logging [env: DEBUG]",
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        default=_env_bool(env.get("PROFILE")),
        help="Serve the diagnostic HTTP endpoint [env: PROFILE]",
    )
    parser.add_argument(
        "--profile-host",
        type=str,
        default=env.get("PROFILE_HOST") or DEFAULT_PROFILE_HOST,
        help="Diagnostic endpoint bind address [env: PROFILE_HOST]",
    )
    parser.add_argument(
        "--profile-port",
        type=int,
        default=_env_int(env, "PROFILE_PORT", DEFAULT_PROFILE_PORT),
        help="Diagnostic endpoint port [env: PROFILE_PORT]",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=_env_bool(env.get("JSON_LOGS")),
        help="Emit JSON log lines [env: JSON_LOGS]",
    )
    return parser


def parse_args(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Resolve flags and environment into a validated ``AppConfig``.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv[1:].
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        Validated, immutable AppConfig.

    Raises:
        ConfigError: On malformed environment values or invalid ranges.
        SystemExit: On flag parsing errors or --help (argparse).

    Example:
        >>> cfg = parse_args(["--capture-delay-from", "1",
        ...                   "--capture-delay-to", "3"], environ={})
        >>> cfg.capture_delay_to
        3
    """
    args = build_parser(environ).parse_args(argv)
    config = AppConfig(
        config_path=args.config_path,
        capture_delay_from=args.capture_delay_from,
        capture_delay_to=args.capture_delay_to,
        save_path=args.save_path,
        font_path=args.font_path,
        watermark_timezone=args.watermark_timezone,
        debug=args.debug,
        profile=args.profile,
        profile_host=args.profile_host,
        profile_port=args.profile_port,
        json_logs=args.json_logs,
    )
    config.validate()
    return config
