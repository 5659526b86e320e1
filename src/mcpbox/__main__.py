"""Allow ``python -m mcpbox``."""

from mcpbox.cli import main

if __name__ == "__main__":
    main()
