"""FitCoach entrypoint."""

import uvicorn

from fitcoach.config.settings import get_settings


def cli() -> None:
    """CLI entrypoint."""
    settings = get_settings()
    uvicorn.run(
        "fitcoach.web.app:create_app",
        factory=True,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    cli()
