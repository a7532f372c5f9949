"""Montage: apply ordered edit-operation plans to a source video with ffmpeg."""

__version__ = "0.3.0"
