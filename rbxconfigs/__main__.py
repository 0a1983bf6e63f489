"""Main entry point when executing rbxconfigs as a package.

This allows running the package using python -m rbxconfigs.
"""

from rbxconfigs.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
