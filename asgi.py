from app import create_app, create_asgi_app
from constants import LOG_FILE, LOG_LEVEL
from logging_config import setup_logging

# Setup logging before building the app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

fastapi_app = create_app()
app = create_asgi_app(fastapi_app)
