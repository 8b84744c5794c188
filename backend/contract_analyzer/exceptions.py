"""
Exception hierarchy for the German Contract Analyzer.
The highlighting core never raises these; they belong to the I/O services.
"""

from typing import Optional


class ContractAnalyzerError(Exception):
    """Base class for all application errors."""


class DocumentParsingError(ContractAnalyzerError):
    """Uploaded file could not be turned into plain text."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class LLMServiceError(ContractAnalyzerError):
    """The language model service is unavailable or misconfigured."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


class AnalysisResponseError(ContractAnalyzerError):
    """The model answered, but not with parsable JSON."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw
