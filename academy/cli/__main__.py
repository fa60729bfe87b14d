"""
Entry point for running the academy CLI as a module.

Usage:
    python -m academy.cli modules
    python -m academy.cli study MODULE_ID
    python -m academy.cli --help
"""
from .main import main

if __name__ == "__main__":
    main()
