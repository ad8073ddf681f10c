"""Run the book generation proxy under uvicorn."""
from __future__ import annotations
import logging

import uvicorn

from bookgen_proxy.serve.fastapi_app import app

LOGGER = logging.getLogger("bookgen.server")


def main() -> None:
    port = app.state.settings.port
    LOGGER.info("Book generation proxy listening on port %s", port)
    # log_config=None keeps our root handler instead of uvicorn's defaults
    uvicorn.run(app, host="0.0.0.0", port=port, log_config=None)

if __name__ == "__main__":
    main()
