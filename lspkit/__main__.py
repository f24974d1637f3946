"""
Entry point for running the lspkit CLI as a module.

Usage: python -m lspkit [command] [options]
"""

from lspkit.cli.parser import main

if __name__ == "__main__":
    main()
