"""Main entry point for the pagepace package."""

from pagepace.cli import main

if __name__ == "__main__":
    main()
