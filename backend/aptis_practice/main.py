import logging

from fastapi import FastAPI

from .settings import settings
from .routers import practice
from .routers import full_test

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="APTIS Practice API")
app.include_router(practice.router)
app.include_router(full_test.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"capture_backend": settings.capture_backend,
		"feedback_language": settings.feedback_language,
	}
