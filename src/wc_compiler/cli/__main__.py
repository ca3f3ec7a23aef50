#!/usr/bin/env python3
"""
CLI entry point for wc_compiler.cli module.

This allows running: python -m wc_compiler.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()
