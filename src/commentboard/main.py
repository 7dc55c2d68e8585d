"""Application entry point for the CommentBoard server."""

from commentboard.app import App
from commentboard.config import Config
from commentboard.logging import setup_logging
from commentboard.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
