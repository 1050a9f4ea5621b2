from __future__ import annotations

import logging

from fastapi import FastAPI, File, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pipo_extract.dispatcher import run_extraction
from pipo_extract.input_files import InMemoryInputFile
from pipo_extract.presentation import render_run_result
from pipo_extract.settings import load_settings

SETTINGS = load_settings()

logging.basicConfig(level=SETTINGS.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="PI/PO Extraction API")


@app.middleware("http")
async def api_prefix_alias(request, call_next):
    """Accept both `/path` and `/api/path` for frontend compatibility."""
    if request.scope.get("path", "").startswith("/api/"):
        request.scope["path"] = request.scope["path"][4:]
    return await call_next(request)


app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/config/extraction")
def extraction_config():
    return SETTINGS.to_dict()


async def _read_uploads(files: list[UploadFile]) -> list[InMemoryInputFile]:
    return [InMemoryInputFile(name=upload.filename or "", content=await upload.read()) for upload in files]


def _empty_upload_response() -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "status": "error",
            "message": "Select at least one file to extract.",
            "warnings": [],
        },
    )


@app.post("/extract")
async def extract_files(files: list[UploadFile] | None = File(None)):
    if not files:
        return _empty_upload_response()

    inputs = await _read_uploads(files)
    logger.info("Extracting metadata from %d uploaded file(s)", len(inputs))
    result = await run_extraction(inputs, settings=SETTINGS)
    return result.model_dump()


@app.post("/extract/summary")
async def extract_files_summary(files: list[UploadFile] | None = File(None)):
    if not files:
        return _empty_upload_response()

    result = await run_extraction(await _read_uploads(files), settings=SETTINGS)
    return render_run_result(result)
