import uvicorn

from estatehub.core.app import create_app
from estatehub.core.config import get_settings

app = create_app()


def run() -> None:
    """Entrypoint for `estatehub-api` script."""
    settings = get_settings()
    uvicorn.run(
        "estatehub.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        factory=False,
    )


if __name__ == "__main__":
    run()
