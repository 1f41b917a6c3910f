"""Timestamp watermark compositing with Pillow.

The watermark is the current time in the configured timezone, formatted
``YYYY-MM-DD HH:MM``, drawn in bold red and centred on a point 20% across
and 3% down from the top-left corner.

Neither a missing font nor an unknown timezone stops the watermark:
the font falls back to Pillow's built-in face and the timezone falls back
to UTC, both with an error logged.

Example:
    watermarker = Watermarker(Path("./data/Roboto-Bold.ttf"), "Europe/Moscow")
    watermarker.apply(Path("/tmp/out/dock_2026-10-19_10-30-00.png"),
                      datetime.now(UTC))
"""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from webcam_snapshot.config import FinishingOptions
from webcam_snapshot.errors import FinishingError
from webcam_snapshot.observability import get_logger

logger = get_logger(__name__)

WATERMARK_FORMAT = "%Y-%m-%d %H:%M"

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


def resolve_timezone(name: str) -> tzinfo:
    """Look up an IANA timezone, falling back to UTC.

    Args:
        name: IANA zone name such as 'Europe/Moscow'.

    Returns:
        The zone, or ``datetime.UTC`` if it cannot be loaded.

    Example:
        >>> resolve_timezone("Europe/Moscow")
        zoneinfo.ZoneInfo(key='Europe/Moscow')
        >>> resolve_timezone("Mars/Olympus_Mons") is UTC
        True
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        logger.error(
            "Error loading watermark timezone, using UTC",
            timezone=name,
            error=str(e),
        )
        return UTC


def watermark_text(now: datetime, zone: tzinfo) -> str:
    """Render ``now`` in ``zone`` as the watermark string.

    Naive datetimes are taken to be in the system's local time.

    Example:
        >>> watermark_text(datetime(2026, 10, 19, 7, 5, tzinfo=UTC),
        ...                ZoneInfo("Europe/Moscow"))
        '2026-10-19 10:05'
    """
    return now.astimezone(zone).strftime(WATERMARK_FORMAT)


def load_font(path: Path, size: int) -> FontType:
    """Load a TrueType font, falling back to Pillow's default face.

    Args:
        path: Font file.
        size: Size in points.

    Returns:
        The requested font, or the default font if loading fails.
    """
    try:
        return ImageFont.truetype(str(path), size)
    except OSError as e:
        logger.error("Error loading font", font_path=str(path), error=str(e))
        return ImageFont.load_default()


class Watermarker:
    """Composites the timestamp onto an image file in place."""

    def __init__(
        self,
        font_path: Path,
        timezone: str,
        options: FinishingOptions | None = None,
    ) -> None:
        """Store the watermark settings.

        The font and timezone are resolved on every ``apply()`` so a fix
        on disk (font installed, tzdata updated) is picked up without a
        restart.

        Args:
            font_path: TrueType font file for the text.
            timezone: IANA zone name for the rendered time.
            options: Size, colour, anchor and PNG compression settings.
        """
        self.font_path = Path(font_path)
        self.timezone = timezone
        self.options = options or FinishingOptions()

    def render(self, image: Image.Image, now: datetime) -> Image.Image:
        """Return a same-size RGB copy of ``image`` with the timestamp drawn.

        Args:
            image: Source image, any mode.
            now: Capture time.

        Returns:
            New RGB image; ``image`` is left untouched.
        """
        width, height = image.size
        canvas = Image.new("RGB", (width, height))
        canvas.paste(image.convert("RGB"), (0, 0))

        draw = ImageDraw.Draw(canvas)
        font = load_font(self.font_path, self.options.font_size)
        text = watermark_text(now, resolve_timezone(self.timezone))

        # Centre the text box on the anchor point
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        anchor_x = width * self.options.anchor_x
        anchor_y = height * self.options.anchor_y
        origin = (anchor_x - (left + right) / 2, anchor_y - (top + bottom) / 2)

        draw.text(origin, text, fill=self.options.text_color, font=font)
        return canvas

    def apply(self, path: Path, now: datetime) -> None:
        """Watermark the image at ``path`` and overwrite it as PNG.

        Args:
            path: Lossless image to watermark.
            now: Capture time.

        Raises:
            FinishingError: step 'watermark' if the file cannot be read,
                decoded or written back.
        """
        try:
            with Image.open(path) as source:
                source.load()
                marked = self.render(source, now)
        except (OSError, UnidentifiedImageError) as e:
            raise FinishingError(f"failed to load {path}: {e}", "watermark") from e

        try:
            marked.save(path, format="PNG", compress_level=self.options.compression)
        except OSError as e:
            raise FinishingError(f"failed to save {path}: {e}", "watermark") from e
