"""Essay Arena: review cooldowns, token economy and live peer attacks."""

__version__ = "0.1.0"
