"""
Entry point for running MicroKV as a module.

Usage:
    python -m microkv DATABASE [command] [options]
"""

from microkv.cli import main

if __name__ == "__main__":
    main()
