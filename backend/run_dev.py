#!/usr/bin/env python3
"""
Start script for the German Contract Analyzer backend
"""

import os
import sys

import uvicorn

# Add current directory to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from contract_analyzer.models.config import settings  # noqa: E402


if __name__ == "__main__":
    print("Starting German Contract Analyzer API...")
    print(f"API Documentation: http://localhost:{settings.API_PORT}/docs")
    print(f"Health Check: http://localhost:{settings.API_PORT}/health")
    if not settings.is_configured_for_llm:
        print("Warning: GROQ_API_KEY is not set, analysis endpoints are disabled")
    print()

    uvicorn.run(
        "contract_analyzer.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
        log_level="info"
    )
