"""Main entry point when executing forecastguard as a package.

This allows running the package using python -m forecastguard.
"""

from forecastguard.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
