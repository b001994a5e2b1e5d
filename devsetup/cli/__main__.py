"""
Entry point for running devsetup CLI as a module.

Usage: python -m devsetup.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
