from __future__ import annotations

import logging

import uvicorn

from sessionauth.config import get_settings
from sessionauth.main import create_app


def main() -> None:
    settings = get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
