"""Persistence sinks."""

from .jsonl import JsonlFileWriter

__all__ = ["JsonlFileWriter"]
