"""
Entry point for running devsetup as a module.

Usage: python -m devsetup [command] [options]
"""

from devsetup.cli.parser import main

if __name__ == "__main__":
    main()
