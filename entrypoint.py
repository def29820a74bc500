import uvicorn
from constants import DIRECTORY_HOST, DIRECTORY_PORT, LOG_FILE, LOG_LEVEL
from logging_config import setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from app import app
from logging_config import get_logger

logger = get_logger(__name__)


def main():
    logger.info(f"Starting presence directory on {DIRECTORY_HOST}:{DIRECTORY_PORT}")
    # log_config=None keeps uvicorn from replacing the handlers set up above.
    uvicorn.run(app, host=DIRECTORY_HOST, port=DIRECTORY_PORT, log_config=None)


if __name__ == "__main__":
    main()
