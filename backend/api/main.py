"""Server entry point

    cd backend/api && python main.py
    # or
    uvicorn main:app --host 0.0.0.0 --port 5001
"""

from app import create_app
from core.config import get_settings

app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
