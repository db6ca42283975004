"""
Local entry point for the electives reference cache.
Runs the FastAPI app with uvicorn; configuration comes from .env / environment.
"""
import logging
import sys
from pathlib import Path

import uvicorn

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add src to Python path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

DEFAULT_PORT = 8000


def ensure_data_dir() -> None:
    """Create the directory the sqlite backend writes to."""
    from elective_cache.config.settings import settings

    if settings.cache.backend == "sqlite":
        Path(settings.cache.db_path).parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Cache database: {settings.cache.db_path}")


if __name__ == "__main__":
    logger.info("Starting electives reference cache...")
    ensure_data_dir()

    from elective_cache.api.app import app

    uvicorn.run(app, host="0.0.0.0", port=DEFAULT_PORT)
