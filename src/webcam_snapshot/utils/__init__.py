"""Utility modules for webcam-snapshot.

This package uses lazy imports via __getattr__ to defer cv2 loading until
the codec classes are actually accessed.

Available exports (lazy-loaded):
    ImageEncoder: Protocol for decode/encode operations
    CV2ImageEncoder: OpenCV-based implementation

Example:
    from webcam_snapshot.utils import CV2ImageEncoder
    encoder = CV2ImageEncoder()
"""

__all__ = ["ImageEncoder", "CV2ImageEncoder"]


def __getattr__(name: str) -> type:
    """Lazily import the codec classes and cache them in module globals.

    Args:
        name: Attribute name being accessed.

    Returns:
        The requested class.

    Raises:
        AttributeError: If name is not a public export.
    """
    if name in ("ImageEncoder", "CV2ImageEncoder"):
        from webcam_snapshot.utils.image import CV2ImageEncoder, ImageEncoder

        globals()["ImageEncoder"] = ImageEncoder
        globals()["CV2ImageEncoder"] = CV2ImageEncoder
        return globals()[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    """Return public API, including not-yet-loaded lazy exports."""
    return [*__all__, "__all__", "__doc__", "__name__", "__file__"]
