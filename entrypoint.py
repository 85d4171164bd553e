import uvicorn
import os
from logging_config import setup_logging

# Setup logging before importing app
log_level = os.getenv("LOG_LEVEL", "DEBUG")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)

from app import app
from constants import PORT
from logging_config import get_logger

logger = get_logger(__name__)

if __name__ == "__main__":
    bind = os.getenv("BIND_ADDRESS", "0.0.0.0")
    logger.info(f"Starting call gate on {bind}:{PORT}")
    # single worker: meetings, tokens and rooms live in this process only
    uvicorn.run(app, host=bind, port=PORT, workers=1)
