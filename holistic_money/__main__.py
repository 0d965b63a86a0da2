"""Run the API with uvicorn: ``python -m holistic_money``."""
from __future__ import annotations

import uvicorn

from holistic_money.core import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("holistic_money.main:app", host="0.0.0.0", port=settings.server.port)


if __name__ == "__main__":
    main()
