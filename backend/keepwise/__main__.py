"""Run the KeepWise API server: `python -m keepwise`."""

import uvicorn

from keepwise.config import settings


def main() -> None:
    uvicorn.run(
        "keepwise.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
