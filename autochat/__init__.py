"""Resumable chat streaming with remote web-automation delegation."""

__version__ = "0.1.0"
