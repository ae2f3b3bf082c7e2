"""Entry point for ``python -m duplex_wire``."""

from .cli import main

if __name__ == "__main__":
    main()
