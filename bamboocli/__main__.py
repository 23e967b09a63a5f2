"""Main entry point when executing bamboocli as a package.

This allows running the package using python -m bamboocli.
"""

from bamboocli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
