"""Application entry point for the OCR notes server."""

import uvicorn

from ocrnotes.api.app import create_app
from ocrnotes.utils.config import load_config
from ocrnotes.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
