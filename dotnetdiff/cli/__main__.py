"""
Entry point for running dotnet-diff CLI as a module.

Usage: python -m dotnetdiff.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
