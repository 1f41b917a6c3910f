"""webcam-snapshot: periodic watermarked screenshots of live webcam pages."""

__version__ = "0.1.0"
