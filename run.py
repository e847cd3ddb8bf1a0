"""Legacy entry point for launching a Ghoster workout window or the CLI."""

from __future__ import annotations

from pathlib import Path
import sys
import os


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)

    # Check for --debug flag BEFORE any imports that use logging
    if "--debug" in args:
        os.environ["GHOSTER_DEBUG"] = "1"
        args.remove("--debug")

    from ghoster.cli import main as cli_main

    if args:
        candidate = Path(args[0])
        if candidate.exists() and candidate.is_file():
            # A bare workout file opens it in the window
            return cli_main(["run", "--gui", str(candidate), *args[1:]])
        return cli_main(args)
    return cli_main(["--help"])


if __name__ == "__main__":
    raise SystemExit(main())
