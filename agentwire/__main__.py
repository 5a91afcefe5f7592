"""Allow ``python -m agentwire``."""

from agentwire.cli import main

if __name__ == "__main__":
    main()
