"""Run the API server with uvicorn."""

import uvicorn

from scrollfetch.config import settings


def main() -> None:
    uvicorn.run(
        "scrollfetch.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
