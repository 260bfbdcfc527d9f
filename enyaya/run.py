#!/usr/bin/env python3
"""
Quick runner for eNyaya Resolve
===============================

Usage:
    python -m enyaya.run
    # or
    python enyaya/run.py
"""

import uvicorn

if __name__ == "__main__":
    print("Starting eNyaya Resolve...")
    print("API docs: http://localhost:8000/docs")
    print("Health:   http://localhost:8000/health")
    print()

    uvicorn.run(
        "enyaya.api:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
