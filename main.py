"""
WebPage Reporter Service - Main Application

A FastAPI backend that audits a web page in two stages: it pulls
performance/SEO telemetry from Google PageSpeed Insights, then asks Claude
AI (Anthropic) to score the page's visual design and conversion
effectiveness against the user's goal, producing a unified report.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from config import settings  # noqa: E402
from routes import error_response, router  # noqa: E402

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(title="WebPage Reporter Service")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Answer malformed request bodies with the same error envelope as everything else."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {field}: {first.get('msg')}" if field else f"Invalid request: {first.get('msg')}"
    else:
        message = "Invalid request"
    return error_response(400, message)


# Include all routes from routes.py
app.include_router(router)


def run():
    """Console entry point."""
    import uvicorn

    logger.info(f"✅ WebPage Reporter Server running at http://{settings.SERVER_HOST}:{settings.SERVER_PORT}")
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT, timeout_keep_alive=60)


if __name__ == "__main__":
    run()
