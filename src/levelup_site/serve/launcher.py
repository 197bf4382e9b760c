"""Run the site under uvicorn."""
from __future__ import annotations
import os

import uvicorn
from dotenv import find_dotenv, load_dotenv

def main() -> None:
    load_dotenv(find_dotenv(usecwd=True))
    host = os.getenv("SITE_HOST", "127.0.0.1")
    port = int(os.getenv("SITE_PORT", "8000"))
    uvicorn.run("levelup_site.serve.fastapi_app:app", host=host, port=port, log_config=None)

if __name__ == "__main__":
    main()
