from fastapi import FastAPI

from relay.analyze import install_error_handlers, router as relay_router


app = FastAPI(title="FlavorLens Analysis Relay")

app.include_router(relay_router, prefix="/api")
install_error_handlers(app)


@app.get("/")
def root():
    return {
        "message": "FlavorLens Analysis Relay is running!",
        "endpoints": {
            "analyze": "/api/analyze",
        },
    }
