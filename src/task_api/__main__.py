"""
Run the API with uvicorn.

Usage:
    python -m task_api
    # or
    uvicorn task_api.main:app --host 0.0.0.0 --port 5000 --reload
"""
import uvicorn

from .settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "task_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
