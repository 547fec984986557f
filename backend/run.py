"""
Run the gamelogd API with uvicorn.
"""
import logging
import os

import uvicorn

from gamelogd.config import settings

if __name__ == "__main__":
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))

    # Auto-reload only in development
    is_development = os.getenv("ENVIRONMENT", "development").lower() == "development"

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    print("\n" + "=" * 60)
    print(f"Starting gamelogd ({'development' if is_development else 'production'}) on http://{host}:{port}")
    print("=" * 60 + "\n")

    uvicorn.run(
        "gamelogd.main:app",
        host=host,
        port=port,
        reload=is_development,
        log_level=settings.log_level.lower()
    )
