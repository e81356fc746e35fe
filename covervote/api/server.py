"""Run the API server."""

from typing import Optional

import uvicorn

from ..config import ConfigManager


def main(config_path: Optional[str] = None, reload: bool = False):
    """Run the API server."""
    config = ConfigManager(config_path).load()

    uvicorn.run(
        "covervote.api.app:build_app",
        factory=True,
        host=config.api.host,
        port=config.api.port,
        reload=reload,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
