"""
German Contract Analyzer - FastAPI Application
Entry point: upload parsing, contract classification, AI analysis and highlighting.
"""

import uvicorn

from contract_analyzer.api.main import app
from contract_analyzer.models.config import settings

__all__ = ["app"]


# Main entry point
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.is_development(),
        log_level=settings.LOG_LEVEL.lower()
    )
