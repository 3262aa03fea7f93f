"""Run the API server: ``python -m ripple_api``."""

from __future__ import annotations

import uvicorn

from ripple_api.api import create_app
from ripple_api.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
