"""FastAPI host shell: upload a photo, receive the annotated PNG and summary."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import lru_cache
import logging
from typing import AsyncIterator

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response

from mole_scan.config import load_settings
from mole_scan.imaging import PhotoDecodeError, decode_photo
from mole_scan.service import AnalysisPipeline, ErrorKind, Failure


LOGGER = logging.getLogger("mole_scan.web")
settings = load_settings()
FAILURE_STATUS_CODES = {
    ErrorKind.MODEL_LOAD: 503,
    ErrorKind.INFERENCE: 500,
    ErrorKind.UNEXPECTED: 500,
}


@lru_cache(maxsize=1)
def get_pipeline() -> AnalysisPipeline:
    """FastAPI dependency for the shared analysis pipeline."""
    return AnalysisPipeline.from_settings(settings)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Shut down the pipeline worker pool when the app stops."""
    yield
    if get_pipeline.cache_info().currsize:
        get_pipeline().close()
        get_pipeline.cache_clear()


app = FastAPI(title="Mole Scan Service", lifespan=lifespan)


@app.post("/api/analyze")
async def analyze_upload(
    file: UploadFile = File(...),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> Response:
    contents = await file.read()
    try:
        photo = decode_photo(contents)
    except PhotoDecodeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    result = await asyncio.wrap_future(pipeline.submit(photo))
    if isinstance(result, Failure):
        LOGGER.warning("Analysis of %s failed: %s", file.filename, result.message)
        return JSONResponse(
            {"status": "error", "error": result.message},
            status_code=FAILURE_STATUS_CODES[result.reason],
        )

    return Response(
        content=result.annotated_image.to_png_bytes(),
        media_type="image/png",
        headers={
            "X-Mole-Count": str(result.count),
            "X-Analysis-Summary": result.summary,
        },
    )


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}
