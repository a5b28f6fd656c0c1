import uvicorn

from blockops.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "blockops_api.app:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
