"""CLI entry point for extension-host."""

import sys


def main() -> int:
    """Main entry point for extension-host CLI."""
    from extensionhost.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
