#!/usr/bin/env python
"""
Development server with auto-reload.
"""
import uvicorn
from pathlib import Path

if __name__ == "__main__":
    script_dir = Path(__file__).parent.absolute()

    uvicorn.run(
        "teamdesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_dirs=[str(script_dir / "teamdesk")],
        reload_includes=["*.py"],
        reload_excludes=["*.pyc", "__pycache__", "*.log", "uploads"],
        reload_delay=0.25,
        log_level="info",
    )
