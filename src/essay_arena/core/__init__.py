"""Core configuration and identity helpers."""
