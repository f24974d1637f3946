"""
Entry point for running the lspkit CLI as a module.

Usage: python -m lspkit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
