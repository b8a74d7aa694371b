"""Main entry point for Persona Macros."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import uvicorn


def setup_logging(debug: bool = False, log_dir: Optional[str] = "data/debug_logs/server"):
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]

    file_handler = None
    log_file = None

    # Add file handler if debug mode is enabled
    if debug and log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"server_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(file_handler)

    # Root stays at INFO so library loggers stay quiet
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )

    app_logger = logging.getLogger('persona_macros')
    app_logger.setLevel(level)

    startup_logger = logging.getLogger(__name__)
    if log_file:
        startup_logger.info(f"[STARTUP] Server log file: {log_file}")
    startup_logger.info(f"[STARTUP] Logging configured: level={logging.getLevelName(level)}")

    return file_handler, log_file


def main():
    """Run the FastAPI server."""
    from persona_macros.config import ConfigLoader, SystemConfig

    try:
        system_config = ConfigLoader().load_system_config()
    except Exception as e:
        # Logging isn't configured yet
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        logging.getLogger(__name__).warning(f"[STARTUP WARNING] Could not load system config: {e}, using defaults")
        system_config = SystemConfig()

    setup_logging(debug=system_config.debug, log_dir=system_config.log_dir)

    logger = logging.getLogger(__name__)
    logger.info(f"Starting Persona Macros server (debug mode: {system_config.debug})...")
    logger.info(f"Server will listen on {system_config.api_host}:{system_config.api_port}")

    uvicorn.run(
        "persona_macros.api.app:app",
        host=system_config.api_host,
        port=system_config.api_port,
        reload=False,
        log_level="info",
        log_config=None,
    )


if __name__ == "__main__":
    main()
