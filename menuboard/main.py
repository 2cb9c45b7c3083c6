"""FastAPI application exposing the menu health and analytics endpoints."""

import logging
from typing import Dict

from fastapi import FastAPI

from menuboard.api.routes import router as api_router
from menuboard.config.settings import LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Menuboard")

app.include_router(api_router)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("menuboard.main:app", host="127.0.0.1", port=8000, reload=True)
