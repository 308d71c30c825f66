#!/usr/bin/env python3
"""
Simple script to run the Revenue Scheduling API server.
"""

import uvicorn

if __name__ == "__main__":
    print("Starting Revenue Scheduling API...")
    print("API will be available at: http://localhost:8000")
    print("Interactive docs at: http://localhost:8000/docs")

    uvicorn.run(
        "revenue_scheduling.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Auto-reload on code changes
        log_level="info"
    )
