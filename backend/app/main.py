from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import router
from app.core.config import API_NAME, CORS_ORIGINS, LOG_LEVEL
from app.core.logging import configure_logging

configure_logging(LOG_LEVEL)

app = FastAPI(title=API_NAME, description="Monthly cost and revenue forecasts for finance cards")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router, prefix="/api/v1")
