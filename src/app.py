"""Preferred ASGI entrypoint.

Use with:
- `uvicorn src.app:app --port 8765`

Set `BUILDIT_SETUP_DRY_RUN=1` to serve a provisioner that only logs what it would do.
The `python -m server` launcher also points here.
"""
import os

from server.app import BuilditSetupServer

server = BuilditSetupServer(dry_run=os.getenv("BUILDIT_SETUP_DRY_RUN", "") in ("1", "true", "yes"))
app = server.create_app()
