#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Uses the database and broadcaster configured in backend/.env; the expiry
scheduler starts with the app unless SCHEDULER_ENABLED=false.
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("ENVIRONMENT", "development")

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"Starting StudioHub API (ENVIRONMENT={os.environ['ENVIRONMENT']})")
    print(f"Access at: http://localhost:{port}")
    print(f"API Docs: http://localhost:{port}/docs")

    uvicorn.run("studiohub.main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
