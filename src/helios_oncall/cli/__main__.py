#!/usr/bin/env python3
"""
CLI entry point for helios_oncall.cli module.

This allows running: python -m helios_oncall.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()
