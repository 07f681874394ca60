"""
Run the API with uvicorn: python -m chatravasa

CHATRAVASA_ENV=development selects the development settings.
"""

import os

import uvicorn

from .app import create_app
from .config import load_settings


def main():
    settings = load_settings(os.environ.get("CHATRAVASA_ENV"))
    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=os.environ.get("CHATRAVASA_HOST", "127.0.0.1"),
        port=int(os.environ.get("CHATRAVASA_PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
