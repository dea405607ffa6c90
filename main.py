"""Command-line entry point for the catalog matching & order validation engine."""

import sys
from pathlib import Path

import uvicorn

# Ensure the repository's src/ directory is importable when running as a script
PROJECT_SRC = Path(__file__).resolve().parent / "src"
sys.path.insert(0, str(PROJECT_SRC))

from catalog_engine.api.app import create_app  # noqa: E402
from catalog_engine.service import CatalogEngine  # noqa: E402
from catalog_engine.shared.config import API_HOST, API_PORT  # noqa: E402
from catalog_engine.shared.logging_config import configure_logging  # noqa: E402


def main() -> None:
    """Build the engine once and serve it over HTTP."""
    configure_logging()

    engine = CatalogEngine()  # the one instance shared by every request handler
    uvicorn.run(create_app(engine), host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
