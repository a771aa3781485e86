from __future__ import annotations

import uvicorn

from bedrock_gateway.config import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "bedrock_gateway.main:build_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
