"""
Main entrypoint: FastAPI server with periodic dependency health checks.

The API lifespan starts the background probe cycle and stops it on shutdown;
on SIGINT/SIGTERM uvicorn shuts the server down and the process exits.

Env: API_HOST, API_PORT, HEALTH_CHECK_INTERVAL_SEC, GRAPH_INDEXER_URL, ETHERSCAN_API_KEY, ZERO_G_API_KEY, etc.

Equivalent: uvicorn backend_passport.api_server.app:app --host 0.0.0.0 --port 8000
"""

# Configure structured JSON logging before other imports that may log
from backend_passport.passport_logging import configure_logging, get_logger

logger = get_logger("main")


def main() -> None:
    """Run the FastAPI server in the main thread."""
    import uvicorn

    from backend_passport.api_server.server import create_app
    from backend_passport.config.settings import get_settings

    settings = get_settings()
    # .env is loaded by now; pick up LOG_LEVEL / LOG_FORMAT from it
    configure_logging()
    logger.info(
        "main_api_starting",
        host=settings.api_host,
        port=settings.api_port,
        environment=settings.app_env,
        version=settings.version,
    )
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port, log_level="info")


if __name__ == "__main__":
    main()
