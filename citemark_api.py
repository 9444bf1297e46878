# citemark_api.py

import logging
import os
import io

import httpx
from fastapi import (
    FastAPI,
    File,
    UploadFile,
    Form,
    Depends,
    HTTPException,
    status,
)
from fastapi.responses import StreamingResponse, JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from citations import extract_matches
from docx_document import DocumentError, DocxDocument, parse_color
from host import ReadyState, TaskPane, host_info_for_upload
from marker import mark_docx_bytes
from report import render_report

logger = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

app = FastAPI(title="Citemark API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # loosened for dev; you can tighten this later
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Citemark-Citations", "X-Citemark-Acts", "X-Citemark-Styled"],
)

# ===== Supabase config (from environment variables) =====
# Auth is only enforced when both values are set.
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

auth_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    cred: HTTPAuthorizationCredentials = Depends(auth_scheme),
):
    """
    Validate the Supabase JWT by calling Supabase's Auth API.
    Returns the user dict if valid, None when auth is not configured;
    otherwise raises 401.
    """
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        return None

    if cred is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
        )

    auth_url = f"{SUPABASE_URL}/auth/v1/user"

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.get(
                auth_url,
                headers={
                    "apikey": SUPABASE_ANON_KEY,
                    "Authorization": f"Bearer {cred.credentials}",
                },
            )
    except httpx.HTTPError as e:
        logger.error("Supabase auth request failed: %r", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth service unavailable",
        ) from e

    if resp.status_code != 200:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    return resp.json()


def _not_docx_response():
    return JSONResponse(
        status_code=400,
        content={"error": "Please upload a .docx file"},
    )


@app.get("/")
def read_root():
    return {"status": "ok", "message": "Citemark API is running"}


@app.post("/scan")
async def scan_document(
    file: UploadFile = File(...),
    user: dict | None = Depends(get_current_user),
):
    """
    List the citations and Acts in a .docx without changing it.
    Returns the matches plus the rendered HTML report.
    """
    if TaskPane().initialize(host_info_for_upload(file.filename)) is not ReadyState.READY:
        return _not_docx_response()

    docx_bytes = await file.read()
    try:
        document = DocxDocument.open(docx_bytes)
    except DocumentError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    matches = extract_matches(document.get_full_text())
    payload = matches.to_dict()
    payload["html"] = render_report(matches)
    return payload


@app.post("/mark")
async def mark_document_upload(
    file: UploadFile = File(...),
    user: dict | None = Depends(get_current_user),
    mark_citations: bool | None = Form(None),
    mark_acts: bool | None = Form(None),
    citation_color: str | None = Form(None),
    act_color: str | None = Form(None),
):
    """
    Mark a .docx: citations go italic red, Acts italic blue (colours can
    be overridden). Streams the marked document back.
    """
    pane = TaskPane()
    if pane.initialize(host_info_for_upload(file.filename)) is not ReadyState.READY:
        return _not_docx_response()

    # Build marker_config from form fields (matches MarkerConfig)
    marker_config: dict = {}
    if mark_citations is not None:
        marker_config["mark_citations"] = mark_citations
    if mark_acts is not None:
        marker_config["mark_acts"] = mark_acts
    for key, value in (("citation_color", citation_color), ("act_color", act_color)):
        if value:
            try:
                parse_color(value)
            except ValueError as e:
                return JSONResponse(status_code=400, content={"error": str(e)})
            marker_config[key] = value

    docx_bytes = await file.read()

    pane.register_trigger(lambda: mark_docx_bytes(docx_bytes, marker_config or None))
    try:
        marked_bytes, metadata = pane.trigger()
    except DocumentError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    logger.info("Citemark metadata for %s: %s", file.filename, metadata)

    base_name = file.filename.rsplit(".", 1)[0] if file.filename else "document"
    output_filename = f"{base_name}_marked.docx"

    return StreamingResponse(
        io.BytesIO(marked_bytes),
        media_type=DOCX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{output_filename}"',
            "X-Citemark-Citations": str(metadata["citations"]),
            "X-Citemark-Acts": str(metadata["acts"]),
            "X-Citemark-Styled": str(metadata["styled_ranges"]),
        },
    )
