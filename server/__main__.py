"""
FastAPI Server Main Entry Point

Run this module to start the local setup API:
    python -m server

Or with uvicorn:
    uvicorn server.app:app --port 8765
"""
import os
import uvicorn
from dotenv import load_dotenv

def load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()

if __name__ == '__main__':
    load_env()
    host = os.getenv("SETUP_SERVER_HOST", "127.0.0.1")
    port = int(os.getenv("SETUP_SERVER_PORT", "8765"))
    uvicorn.run(
        "src.app:app", # module path
        host=host,
        port=port,
        log_level="info"
    )
