"""
Entry point for running sPoX as a module.

Usage:
    python -m spox
"""

from spox.cli import main

if __name__ == "__main__":
    main()
