# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Run the API server with uvicorn.

Example:
    python -m fieldservice
"""

import uvicorn

from fieldservice.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "fieldservice.api.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
