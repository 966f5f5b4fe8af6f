"""Entry point for ``python -m chop``.

Usage:
    python -m chop --help
    chop --help  # If installed via pip/uv
"""

from chop.cli import main

if __name__ == "__main__":
    main()
