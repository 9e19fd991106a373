#!/usr/bin/env python3
"""
Run the benchmark service locally - No Docker Required!

Usage:
    python run_local.py

This will start the API server at http://localhost:8000
- API Docs: http://localhost:8000/docs
- Health Check: http://localhost:8000/health
- Metrics: http://localhost:8000/metrics
"""

import os
from pathlib import Path

project_root = Path(__file__).parent.parent
(project_root / "data").mkdir(exist_ok=True)

# Set environment for local development
os.environ.setdefault("DATABASE_URL", f"sqlite:///{project_root}/data/benchmark.db")
os.environ.setdefault("DEBUG", "true")


def main():
    print("=" * 60)
    print("  Medical Bill Benchmark Service - Local Development Server")
    print("=" * 60)
    print()
    print("  API URL:      http://localhost:8000")
    print("  API Docs:     http://localhost:8000/docs")
    print("  Health Check: http://localhost:8000/health")
    print()
    print("  Press Ctrl+C to stop")
    print("=" * 60)

    from app.db.session import create_tables
    create_tables()

    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Auto-reload on code changes
        log_level="info",
    )


if __name__ == "__main__":
    main()
