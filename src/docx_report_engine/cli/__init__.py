"""Command-line interface module for Docx Report Engine.

This module provides CLI tools for report generation, command listing and
metadata inspection with JSON configuration files.
"""

from .main import main

__all__ = ["main"]
