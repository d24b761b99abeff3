"""Run the persistence service: ``python -m ai_chat_console``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "ai_chat_console.api.app:app",
        host=os.getenv("CHAT_HOST", "127.0.0.1"),
        port=int(os.getenv("CHAT_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
