"""
Package entry point.

Allows running the application via:

    python -m schedmatch

This simply forwards execution to schedmatch.cli.main().
"""

from schedmatch.cli import main

if __name__ == "__main__":
    main()
