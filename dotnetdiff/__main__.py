"""
Entry point for running dotnet-diff as a module.

Usage: python -m dotnetdiff [command] [options]
"""

from dotnetdiff.cli.parser import main

if __name__ == "__main__":
    main()
