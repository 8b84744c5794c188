"""
German Contract Analyzer API
FastAPI backend for upload parsing, classification, analysis and highlighting.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..exceptions import AnalysisResponseError, DocumentParsingError, LLMServiceError
from ..highlighting.normalizer import AnnotationNormalizer
from ..highlighting.pipeline import HighlightPipeline, create_pipeline
from ..models.config import settings
from ..models.schemas import (
    AnalyzeContractRequest,
    AnalyzeContractResponse,
    ClassifyContractRequest,
    ClassifyContractResponse,
    ErrorResponse,
    HealthCheckResponse,
    HighlightRequest,
    HighlightResult,
    ParseDocumentResponse,
)
from ..services.analysis import ContractAnalysisService
from ..services.contract_classifier import ContractClassifier
from ..services.document_parser import DocumentParser, validate_upload
from ..services.llm_client import GroqClient

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    if not settings.is_configured_for_llm:
        logger.warning("GROQ_API_KEY is not set; analysis endpoints will return 500")
    yield
    logger.info(f"Shutting down {settings.APP_NAME}")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="AI-assisted legal risk analysis for German contracts",
    docs_url="/docs" if not settings.is_production() else None,
    redoc_url="/redoc" if not settings.is_production() else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=settings.ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# Dependencies

def get_document_parser() -> DocumentParser:
    return DocumentParser(settings)


def get_llm_client() -> GroqClient:
    return GroqClient(settings)


def get_classifier(llm_client: GroqClient = Depends(get_llm_client)) -> ContractClassifier:
    return ContractClassifier(llm_client, settings)


def get_pipeline() -> HighlightPipeline:
    return create_pipeline(settings)


def get_analysis_service(
    llm_client: GroqClient = Depends(get_llm_client),
    classifier: ContractClassifier = Depends(get_classifier),
    pipeline: HighlightPipeline = Depends(get_pipeline),
) -> ContractAnalysisService:
    return ContractAnalysisService(settings, llm_client=llm_client, classifier=classifier, pipeline=pipeline)


# Error handling

def _error_response(status_code: int, error: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    body = ErrorResponse(error=error, status_code=status_code, timestamp=datetime.utcnow(), details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Custom HTTP exception handler."""
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    logger.warning(f"Rejected request to {request.url.path}: {len(exc.errors())} validation errors")
    return _error_response(400, "Missing or invalid contract data", {"errors": jsonable_encoder(exc.errors())})


@app.exception_handler(DocumentParsingError)
async def document_parsing_error_handler(request, exc: DocumentParsingError):
    logger.warning(f"Document parsing failed: {exc}")
    return _error_response(exc.status_code, str(exc))


@app.exception_handler(LLMServiceError)
async def llm_service_error_handler(request, exc: LLMServiceError):
    logger.error(f"AI service error: {exc}")
    return _error_response(exc.status_code, str(exc))


@app.exception_handler(AnalysisResponseError)
async def analysis_response_error_handler(request, exc: AnalysisResponseError):
    logger.error(f"Invalid AI response: {exc}")
    details = {"raw": exc.raw[:2000]} if exc.raw else None
    return _error_response(502, "Invalid AI response format", details)


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """General exception handler."""
    logger.error(f"Unhandled exception: {str(exc)}")
    return _error_response(500, "Internal server error")


# Health check endpoints

@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Health check endpoint."""
    return HealthCheckResponse(
        status="healthy",
        version=settings.APP_VERSION,
        configured=settings.is_configured_for_llm,
    )


@app.get("/", response_model=HealthCheckResponse)
async def root():
    return await health_check()


# Core endpoints

@app.post("/api/parse-document", response_model=ParseDocumentResponse)
async def parse_document(
    file: UploadFile = File(...),
    parser: DocumentParser = Depends(get_document_parser),
):
    """Parse an uploaded PDF, Word or text file into plain text, pages and sections."""
    content = await file.read()
    filename = file.filename or "upload"

    error = validate_upload(filename, len(content), settings)
    if error:
        status_code = 413 if len(content) > settings.max_file_size_bytes else 400
        raise HTTPException(status_code=status_code, detail=error)

    contract = parser.parse(content, filename, file.content_type)
    return ParseDocumentResponse(contract=contract)


@app.post("/api/classify-contract", response_model=ClassifyContractResponse)
async def classify_contract(
    request: ClassifyContractRequest,
    classifier: ContractClassifier = Depends(get_classifier),
):
    """Classify a contract into the category that selects its analysis prompt."""
    classification = await classifier.classify(request.content)
    return ClassifyContractResponse(classification=classification)


@app.post("/api/analyze-contract", response_model=AnalyzeContractResponse)
async def analyze_contract(
    request: AnalyzeContractRequest,
    service: ContractAnalysisService = Depends(get_analysis_service),
):
    """Run the full analysis: classification, model call, normalization and highlights."""
    try:
        return await service.analyze(
            request.content,
            request.name,
            sections=request.sections,
            contract_type=request.contract_type,
            pages=request.pages,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/highlights", response_model=HighlightResult)
async def compute_highlights(
    request: HighlightRequest,
    pipeline: HighlightPipeline = Depends(get_pipeline),
):
    """Recompute highlights for existing annotations or a raw model answer, without calling the model."""
    normalizer = AnnotationNormalizer()
    if request.annotations:
        annotations = normalizer.normalize({"annotations": request.annotations})
    elif request.raw is not None:
        annotations = normalizer.normalize(request.raw)
    else:
        raise HTTPException(status_code=400, detail="Either annotations or raw must be provided")

    try:
        return pipeline.build_highlights(request.content, annotations, request.sections)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
