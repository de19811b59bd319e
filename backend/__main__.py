"""
Entry point for running the application with `python -m backend`.
"""
import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8001")),
        reload=os.environ.get("ENVIRONMENT", "development") == "development",
    )
