"""
mcpi CLI - Command-line viewer and control client for the sampling service.

This package provides a CLI to watch live snapshots and to send control
commands without manually writing JSON.

Usage:
    mcpi-cli view --output latest.png
    mcpi-cli ready
    mcpi-cli status
"""

__version__ = "1.0.0"
