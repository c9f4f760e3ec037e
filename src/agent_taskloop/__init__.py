"""Task execution and retry orchestration for external AI coding agents."""

__version__ = "0.1.0"
