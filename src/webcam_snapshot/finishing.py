"""Image finishing pipeline: raw screenshot -> watermarked JPEG on disk.

Order of operations (watermark, then compress):

1. write the raw PNG bytes to ``{base}.png``
2. draw the timestamp onto that file in place
3. read it back without orientation correction
4. encode JPEG at quality 70
5. write ``{base}.jpg``
6. delete ``{base}.png``

The intermediate PNG is removed whether the run succeeds or fails. A
failure to remove it is logged and otherwise ignored.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from webcam_snapshot.config import FinishingOptions
from webcam_snapshot.errors import FinishingError
from webcam_snapshot.observability import get_logger
from webcam_snapshot.utils.image import ImageEncoder
from webcam_snapshot.watermark import Watermarker

logger = get_logger(__name__)

FILENAME_TIME_FORMAT = "%Y-%m-%d_%H-%M-%S"


def snapshot_basename(camera_name: str, when: datetime) -> str:
    """Build the extension-less output filename for a capture.

    Example:
        >>> snapshot_basename("dock", datetime(2026, 10, 19, 10, 30, 5))
        'dock_2026-10-19_10-30-05'
    """
    return f"{camera_name}_{when.strftime(FILENAME_TIME_FORMAT)}"


def _with_extension(base_path: Path, extension: str) -> Path:
    # Camera names may contain dots, so with_suffix() is not safe here.
    return base_path.parent / f"{base_path.name}.{extension}"


class FinishingPipeline:
    """Turns raw screenshot bytes into the final compressed image file.

    Example:
        >>> pipeline = FinishingPipeline(
        ...     watermarker=Watermarker(font_path, "Europe/Moscow"),
        ... )
        >>> pipeline.finish(png_bytes, Path("/tmp/out/dock_2026-10-19_10-30-05"),
        ...                 now)
        PosixPath('/tmp/out/dock_2026-10-19_10-30-05.jpg')
    """

    def __init__(
        self,
        watermarker: Watermarker,
        encoder: ImageEncoder | None = None,
        options: FinishingOptions | None = None,
    ) -> None:
        """Wire the pipeline collaborators.

        Args:
            watermarker: Draws the timestamp onto the intermediate file.
            encoder: Codec used for decode and JPEG encode. Defaults to
                CV2ImageEncoder (imports OpenCV).
            options: Quality, compression and extension settings.
        """
        if encoder is None:
            from webcam_snapshot.utils.image import CV2ImageEncoder

            encoder = CV2ImageEncoder()
        self.watermarker = watermarker
        self.encoder = encoder
        self.options = options or FinishingOptions()

    def finish(self, raw: bytes, base_path: Path, now: datetime) -> Path:
        """Run all finishing steps for one screenshot.

        Args:
            raw: PNG bytes from the browser.
            base_path: Output path without extension.
            now: Capture time for the watermark.

        Returns:
            Path of the final JPEG.

        Raises:
            FinishingError: With the failing step name. No intermediate
                file is left behind.
        """
        intermediate = _with_extension(base_path, self.options.intermediate_extension)
        final = _with_extension(base_path, self.options.final_extension)

        created = False
        try:
            try:
                intermediate.write_bytes(raw)
                created = True
            except OSError as e:
                raise FinishingError(
                    f"error writing image {intermediate.name}: {e}",
                    "write_intermediate",
                ) from e

            self.watermarker.apply(intermediate, now)

            try:
                marked = intermediate.read_bytes()
            except OSError as e:
                raise FinishingError(
                    f"error reading image with watermark {intermediate.name}: {e}",
                    "read",
                ) from e

            jpeg = self._transcode(marked)
            self._write_final(final, jpeg)
        finally:
            if created:
                _remove_quietly(intermediate, "intermediate")

        logger.debug("Finishing complete", path=str(final), size_bytes=len(jpeg))
        return final

    def _transcode(self, data: bytes) -> bytes:
        """Decode the watermarked PNG and re-encode it as JPEG.

        Raises:
            FinishingError: step 'transcode'.
        """
        try:
            img = self.encoder.decode(data, auto_orient=self.options.auto_orient)
            return self.encoder.encode_jpeg(
                img,
                quality=self.options.quality,
                optimize=self.options.compression > 0,
            )
        except Exception as e:  # cv2.error is not a ValueError subclass
            raise FinishingError(f"error converting image: {e}", "transcode") from e

    def _write_final(self, final: Path, jpeg: bytes) -> None:
        """Write the JPEG, removing any partial file on failure.

        Raises:
            FinishingError: step 'write_final'.
        """
        try:
            final.write_bytes(jpeg)
        except OSError as e:
            _remove_quietly(final, "partial final")
            raise FinishingError(
                f"error writing compressed image {final.name}: {e}", "write_final"
            ) from e


def _remove_quietly(path: Path, kind: str) -> None:
    """Best-effort delete; failures are logged, never raised."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Error removing {kind} file", path=str(path), error=str(e))
