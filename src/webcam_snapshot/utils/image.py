"""Image codec abstractions for dependency injection.

This module provides a Protocol-based interface for the decode and JPEG
encode operations of the finishing pipeline, allowing cv2 to be replaced
in tests without sys.modules manipulation. CV2ImageEncoder provides the
real implementation using OpenCV.

Usage:
    # Production (default)
    encoder = CV2ImageEncoder()
    img = encoder.decode(png_bytes, auto_orient=False)
    jpeg_bytes = encoder.encode_jpeg(img, quality=70, optimize=True)

    # Testing
    class FailingEncoder:
        def decode(self, data, auto_orient=False):
            raise ValueError("corrupt")
        def encode_jpeg(self, img, quality=70, optimize=False):
            return b""

Architecture:
    ImageEncoder (Protocol) <- CV2ImageEncoder (real)
                            <- fakes (tests)

The cv2 import is deferred to CV2ImageEncoder.__init__ so that importing
the pipeline does not load OpenCV.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from numpy.typing import NDArray

__all__ = ["ImageEncoder", "CV2ImageEncoder"]


@runtime_checkable
class ImageEncoder(Protocol):
    """Protocol defining the codec operations used by the finishing pipeline.

    Example:
        >>> class StubEncoder:
        ...     def decode(self, data, auto_orient=False):
        ...         return np.zeros((10, 10, 3), dtype=np.uint8)
        ...     def encode_jpeg(self, img, quality=70, optimize=False):
        ...         return b'\xff\xd8stub'
        >>> isinstance(StubEncoder(), ImageEncoder)
        True
    """

    def decode(self, data: bytes, auto_orient: bool = False) -> NDArray[Any]:
        """Decode encoded image bytes (PNG, JPEG, ...) into a BGR array.

        Args:
            data: Encoded image file contents.
            auto_orient: Apply EXIF orientation while decoding. The
                pipeline passes False so pixels keep their stored layout.

        Returns:
            (H, W, 3) uint8 BGR array.

        Raises:
            ValueError: If the bytes cannot be decoded.
        """
        ...  # pragma: no cover

    def encode_jpeg(
        self, img: NDArray[Any], quality: int = 70, optimize: bool = False
    ) -> bytes:
        """Encode an image array as JPEG bytes.

        Args:
            img: (H, W) or (H, W, 3) uint8 array.
            quality: JPEG quality 1-100.
            optimize: Compute optimal Huffman tables (smaller file, slower).

        Returns:
            JPEG bytes starting with 0xFFD8.

        Raises:
            ValueError: If quality is out of range or encoding fails.
        """
        ...  # pragma: no cover


class CV2ImageEncoder(ImageEncoder):
    """OpenCV-based codec implementation.

    Uses cv2.imdecode and cv2.imencode. The cv2 import happens in
    __init__, not at module import.

    Example:
        >>> encoder = CV2ImageEncoder()
        >>> img = encoder.decode(Path("shot.png").read_bytes())
        >>> encoder.encode_jpeg(img, quality=70)[:2]
        b'\xff\xd8'
    """

    def __init__(self) -> None:
        """Import cv2 and numpy.

        Raises:
            ImportError: If opencv-python-headless is not installed.
        """
        import cv2
        import numpy as np

        self._cv2 = cv2
        self._np = np

    def decode(self, data: bytes, auto_orient: bool = False) -> NDArray[Any]:
        """Decode image bytes with cv2.imdecode.

        IMREAD_IGNORE_ORIENTATION is added unless ``auto_orient`` is set.

        Args:
            data: Encoded image bytes.
            auto_orient: Honour EXIF orientation.

        Returns:
            (H, W, 3) uint8 BGR array.

        Raises:
            ValueError: If ``data`` is empty or not a decodable image.
        """
        if not data:
            raise ValueError("cannot decode empty image data")
        flags = self._cv2.IMREAD_COLOR
        if not auto_orient:
            flags |= self._cv2.IMREAD_IGNORE_ORIENTATION
        buffer = self._np.frombuffer(data, dtype=self._np.uint8)
        img = self._cv2.imdecode(buffer, flags)
        if img is None:
            raise ValueError(f"could not decode image ({len(data)} bytes)")
        return img

    def encode_jpeg(
        self, img: NDArray[Any], quality: int = 70, optimize: bool = False
    ) -> bytes:
        """Encode with cv2.imencode using IMWRITE_JPEG_QUALITY/OPTIMIZE.

        Args:
            img: NumPy image array (grayscale or BGR, uint8).
            quality: JPEG quality 1-100.
            optimize: Enable Huffman table optimisation.

        Returns:
            JPEG bytes starting with 0xFFD8.

        Raises:
            ValueError: If quality not in 1-100 or encoding fails.
        """
        if not 1 <= quality <= 100:
            raise ValueError(f"quality must be 1-100, got {quality}")
        params = [
            self._cv2.IMWRITE_JPEG_QUALITY,
            quality,
            self._cv2.IMWRITE_JPEG_OPTIMIZE,
            1 if optimize else 0,
        ]
        success, data = self._cv2.imencode(".jpg", img, params)
        if not success:
            raise ValueError(
                f"JPEG encoding failed for image shape={img.shape}, dtype={img.dtype}"
            )
        return data.tobytes()
