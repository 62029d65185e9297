#!/usr/bin/env python
"""
Development server
"""
import os
import sys

# Make the project root importable without installing
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

if __name__ == "__main__":
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    # Local SQLite database unless one is configured
    os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///./contest_judge.db")
    os.environ.setdefault("DEBUG", "true")

    uvicorn.run(
        "contest_judge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="debug",
    )
