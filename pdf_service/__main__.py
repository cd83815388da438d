"""
Server entry point: python -m pdf_service

Starts the FastAPI app under uvicorn, bound to HOST:PORT from the settings.
"""

import uvicorn

from .config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "pdf_service.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
