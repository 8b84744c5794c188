"""
Services: document parsing, classification, model access and analysis.
"""

from .analysis import ContractAnalysisService, create_analysis_service
from .contract_classifier import ContractClassifier, analyze_structure, create_classifier
from .document_parser import DocumentParser, detect_sections, parse_document, validate_upload
from .llm_client import GroqClient, create_llm_client, parse_json_response

__all__ = [
    "ContractAnalysisService",
    "ContractClassifier",
    "DocumentParser",
    "GroqClient",
    "analyze_structure",
    "create_analysis_service",
    "create_classifier",
    "create_llm_client",
    "detect_sections",
    "parse_document",
    "parse_json_response",
    "validate_upload",
]
