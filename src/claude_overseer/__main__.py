"""Entry point for `python -m claude_overseer`."""

import sys


def main():
    from claude_overseer.app import run
    sys.exit(run())


if __name__ == "__main__":
    main()
