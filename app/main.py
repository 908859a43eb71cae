# Run from project root: uvicorn app.main:app --reload  (or: python -m app.main)

import logging
import os

import uvicorn
from fastapi import FastAPI

from app.api.routes import router

logging.basicConfig(level=logging.INFO)


app = FastAPI(title="Deep Agent Backend")
app.include_router(router)


def main() -> None:
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    logging.getLogger(__name__).info("[main] Deep agent backend booting on %s:%d", host, port)
    uvicorn.run("app.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
