"""Main application entry point."""

import argparse
import logging

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from src.api.billing import router as billing_router
from src.api.errors import register_error_handlers
from src.services.config import load_config
from src.services.logging import setup_server_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the billing API application."""
    app = FastAPI(
        title="Condo Billing",
        description="Monthly bill generation for condominium units",
        version="0.1.0",
    )
    register_error_handlers(app)
    app.include_router(billing_router)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint for monitoring."""
        return {"status": "ok"}

    return app


app = create_app()


def main() -> None:
    """Run the API server."""
    parser = argparse.ArgumentParser(description="Condo billing API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    # Load environment variables
    load_dotenv()
    config = load_config()

    # Configure logging (with file logging)
    setup_server_logging(config.log_file)

    logger.info("Starting Uvicorn server on %s:%d...", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
