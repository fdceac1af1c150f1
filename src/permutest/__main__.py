"""permutest CLI entry point.

This module enables running permutest as:
    python -m permutest <command>
"""

from permutest.cli import main

if __name__ == "__main__":
    main()
