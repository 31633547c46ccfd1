"""Run the API server: ``python -m blog_api``."""

import uvicorn

from blog_api.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "blog_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
