"""Live session-tree monitoring and cost tracking for Claude Code transcripts."""

__version__ = "0.1.0"
