"""TodoWatcher main application."""

import argparse
import logging
import sys

import uvicorn

from todo_watcher.factory import create_app, get_config

# Create app instance for uvicorn
app = create_app()


def main(argv: list[str] | None = None) -> int:
    """Run the application."""
    parser = argparse.ArgumentParser(prog="todo-watcher", description=__doc__)
    parser.add_argument("path", nargs="?", help="todo file to watch (overrides saved preference)")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s [%(name)s:%(lineno)d] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config = get_config()
    if args.path:
        config.todo_file = args.path

    # Run server with app from module level
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level="debug" if args.debug else "info",
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
