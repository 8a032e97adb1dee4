"""Application entry point for the ExamDesk service."""

from __future__ import annotations

from exam_app.core.exam_manager import ExamManager
from exam_app.server.api_server import start_api_server
from exam_app.utils.logging_config import configure_logging
from exam_app.utils.settings import AppSettings


def main() -> None:
    """Initialize logging, load settings and serve the API until interrupted."""
    logger = configure_logging()
    settings = AppSettings.from_env()
    logger.info("Starting ExamDesk with data directory %s", settings.data_dir)
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; PDF import and GATE papers are unavailable.")

    exam_manager = ExamManager.from_settings(settings)
    server_thread = start_api_server(exam_manager=exam_manager, host=settings.host, port=settings.port)
    logger.info("API available at http://%s:%d/", settings.host, settings.port)
    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down ExamDesk")


if __name__ == "__main__":
    main()
