import logging
import os

from fastapi import FastAPI

from relay.analyze import install_error_handlers, router as relay_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="FlavorLens API")

app.include_router(relay_router, prefix="/api")
install_error_handlers(app)


@app.get("/")
def root():
    return {
        "message": "FlavorLens API is running!",
        "endpoints": {
            "analyze": "/api/analyze",
        },
    }
