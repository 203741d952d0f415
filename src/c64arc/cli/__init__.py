"""
c64arc Command-Line Interface
=============================

This package provides the `c64arc` command-line tool for inspecting,
extracting, validating and converting T64 and PRG containers.

The tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["c64arc"]
