"""
FastAPI entrypoint: provider relay plus the helpers the browser page uses.

Routes:
- POST /api/{provider}     relay a question to Gemini or Groq, answer as {response}
- POST /api/ingest         normalize an uploaded file (image, CSV, workbook, other)
- POST /api/render         Markdown answer -> styled HTML + chart configurations
- GET  /api/quick-answers  FAQ feed with answers converted to HTML
Every AssistantError becomes a JSON {error} body with its status code.
"""

import os
import json
import logging
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from typing import List
import httpx
from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import AssistantError
from .ingest import ingest_file
from .llm_client import ADAPTERS, ProviderRequest, call_provider, get_adapter
from .prompts import DetailLevel
from .render import markdown_to_html, render_markdown
from .schemas import (
    ErrorResponse,
    IngestResponse,
    QuickAnswer,
    RelayRequest,
    RelayResponse,
    RenderRequest,
    RenderResponse,
)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
QUICK_ANSWERS_PATH = os.path.join(BASE_DIR, "data", "quick_answers.json")

app = FastAPI(
    title="ExcelHub AI Assistant",
    description="Relay for Excel questions to Gemini or Groq, with file ingestion and answer rendering",
    version="1.0.0",
)


@app.exception_handler(AssistantError)
async def assistant_error_handler(request: Request, exc: AssistantError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same {error} shape as every other failure."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request body"
    logger.warning(f"{request.method} {request.url.path} -> 422: {message}")
    return JSONResponse(status_code=422, content={"error": f"Invalid request: {message}"})


async def get_http_client():
    """Outbound client for provider calls; one per request, transport timeout only."""
    timeout = float(os.getenv("PROVIDER_TIMEOUT_S", "60"))
    async with httpx.AsyncClient(timeout=timeout) as client:
        yield client


def load_quick_answers(path: str = QUICK_ANSWERS_PATH) -> List[QuickAnswer]:
    """Read the FAQ feed and convert each answer to HTML (plain Markdown, no post-processing)."""
    with open(path, "r", encoding="utf-8") as f:
        items = json.load(f)
    return [
        QuickAnswer(question=item["question"], answer=item["answer"], answer_html=markdown_to_html(item["answer"]))
        for item in items
    ]


# Health check endpoint
@app.get("/", tags=["Health"])
async def root():
    return {
        "status": "ok",
        "service": "ExcelHub AI Assistant",
        "version": app.version,
        "providers": sorted(ADAPTERS),
    }


@app.get("/api/quick-answers", response_model=List[QuickAnswer])
async def quick_answers():
    return load_quick_answers()


@app.post("/api/ingest", response_model=IngestResponse, responses={400: {"model": ErrorResponse}})
async def ingest_endpoint(file: UploadFile = File(...)):
    data = await file.read()
    ingested = ingest_file(file.filename or "upload", file.content_type, data)
    return IngestResponse(
        file_name=ingested.name,
        file_type=ingested.file_type,
        kind=ingested.kind.value,
        file_content=ingested.content,
        preview=ingested.preview,
        message=ingested.message,
    )


@app.post("/api/render", response_model=RenderResponse)
async def render_endpoint(payload: RenderRequest):
    result = render_markdown(payload.content)
    return RenderResponse(html=result.html, charts=result.charts)


# Declared last so the fixed /api/* routes above take precedence
@app.post(
    "/api/{provider}",
    response_model=RelayResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def relay_endpoint(
    provider: str,
    payload: RelayRequest,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    adapter = get_adapter(provider)
    detail_level = DetailLevel.parse(payload.response_detail)
    logger.info(
        f"Relay request: provider={adapter.name} detail={detail_level.value} "
        f"file={'yes' if payload.file_content else 'no'} type={payload.file_type}"
    )

    request = ProviderRequest(
        prompt=payload.prompt or "",
        file_content=payload.file_content,
        file_type=payload.file_type,
        detail_level=detail_level,
    )
    text = await call_provider(adapter, request, client)
    return RelayResponse(response=text)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
