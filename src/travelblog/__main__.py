"""Travel blog entrypoint.

Run with:
  python -m travelblog
"""

import os

import uvicorn
from dotenv import load_dotenv


def main() -> None:
    load_dotenv()
    host = os.getenv("TRAVELBLOG_HOST", "0.0.0.0")
    port = int(os.getenv("TRAVELBLOG_PORT") or os.getenv("PORT") or "3000")
    reload = os.getenv("TRAVELBLOG_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("travelblog.app:create_app", factory=True, host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
