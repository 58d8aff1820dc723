#!/usr/bin/env python3
"""
Quick runner for iReporter
==========================

Usage:
    python -m ireporter.run
    # or
    ireporter-api
"""

import uvicorn


def main():
    print("Starting iReporter API...")
    print("API docs: http://localhost:3000/docs")
    print("Health:   http://localhost:3000/health")
    print()

    uvicorn.run(
        "ireporter.api:app",
        host="0.0.0.0",
        port=3000,
        reload=True
    )


if __name__ == "__main__":
    main()
