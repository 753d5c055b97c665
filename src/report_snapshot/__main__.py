"""Package entry point.

Preferred invocation is via the installed console script:

    report-snapshot ...

For convenience we also support:

    python -m report_snapshot ...
"""

from __future__ import annotations

from .cli import app


def main() -> None:
    """Entry point used by `python -m report_snapshot`."""

    app()


if __name__ == "__main__":
    main()
