import uvicorn
from constants import HOST, PORT, RELOAD, LOG_LEVEL, LOG_FILE
from logging_config import get_logger, setup_logging

setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def main():
    logger.info(f"Starting signaling relay on {HOST}:{PORT}")
    logger.info(f"Access the application at: http://localhost:{PORT}")
    logger.info(f"API endpoints available at: http://localhost:{PORT}/api/rooms")
    # log_config=None keeps the handlers installed by setup_logging
    uvicorn.run("asgi:app", host=HOST, port=PORT, reload=RELOAD, log_config=None)


if __name__ == "__main__":
    main()
