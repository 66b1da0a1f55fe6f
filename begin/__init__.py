"""Build orchestration for web client/server projects."""

__version__ = "0.3.0"
