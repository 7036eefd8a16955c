# sportcenter/run.py
"""
Development server runner.

    python -m sportcenter.run
"""

import os

import uvicorn

from .core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "sportcenter.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
