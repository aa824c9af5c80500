"""
Run the service with uvicorn, using HOST and PORT from the settings.

Usage:
    python -m user_service
"""

import uvicorn

from user_service.config import Settings
from user_service.main import create_app


def main() -> None:
    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
