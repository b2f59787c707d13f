"""Entrypoint: run the search API server."""

import uvicorn

from manual_rag.api.app import create_app
from manual_rag.config.settings import Settings


def main() -> None:
    settings = Settings()
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
