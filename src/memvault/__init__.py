"""memvault — topic-keyed long-term memory for conversational agents."""

__version__ = "1.0.0"
