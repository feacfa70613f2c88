"""Docker launcher for the FramePack video-generation web UI."""

__version__ = "0.1.0"
