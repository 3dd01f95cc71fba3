"""Run the API server: `python -m mjengo` or the `mjengo` script."""

import os

import uvicorn

from .config import settings


def main():
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "mjengo.main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    main()
