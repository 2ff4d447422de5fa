"""Allow ``python -m tailwatch``."""

from tailwatch.cli import main

if __name__ == "__main__":
    main()
