from fastapi import FastAPI

from backend.app.api.v1.router import router as v1_router
from backend.app.core.config import API_HOST, API_PORT, LOG_LEVEL
from backend.app.core.logging import configure_logging

configure_logging()

app = FastAPI(title="Reservations API", version="0.1.0")
app.include_router(v1_router, prefix="/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.app.main:app",
        host=API_HOST,
        port=API_PORT,
        log_level=LOG_LEVEL.lower(),
    )
