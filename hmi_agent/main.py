# hmi_agent/main.py

import logging
import os
from datetime import datetime

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from hmi_agent.config import Settings, get_settings
from hmi_agent.errors import ConfigurationError, SessionError
from hmi_agent.schemas import (
    GenerateScreensRequest,
    HealthResponse,
    HMIResponse,
    ProgressResponse,
    ScreensStageResponse,
    WorkflowStageResponse,
)
from hmi_agent.services.llm import GroqChatClient
from hmi_agent.services.parser import FILE_TYPES
from hmi_agent.services.pipeline import HMIPipeline, safe_name
from hmi_agent.services.prompts import PROMPT_TEMPLATES, PROMPT_VERSION
from hmi_agent.services.session import SessionContext, SessionStore

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

sessions = SessionStore(settings.session_ttl_seconds, settings.session_idle_seconds)


# --------------------------------------------
# Dependencies
# --------------------------------------------
def get_llm(settings: Settings = Depends(get_settings)) -> GroqChatClient:
    try:
        return GroqChatClient.from_settings(settings)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


def get_pipeline(settings: Settings = Depends(get_settings), llm=Depends(get_llm)) -> HMIPipeline:
    return HMIPipeline(settings, llm)


def session_http_error(e: SessionError) -> HTTPException:
    return HTTPException(status_code=409 if e.busy else 404, detail=str(e))


async def save_upload(upload: UploadFile, settings: Settings, session: SessionContext) -> str:
    extension = os.path.splitext(upload.filename or "")[1].lower()
    if extension not in FILE_TYPES:
        raise HTTPException(status_code=400, detail="Only .txt, .pdf and .docx documents are supported")

    file_bytes = await upload.read()
    if not file_bytes:
        raise HTTPException(status_code=400, detail="Uploaded document is empty")
    if len(file_bytes) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail=f"Document exceeds {settings.max_upload_mb} MB")

    os.makedirs(settings.upload_dir, exist_ok=True)
    stem = safe_name(os.path.splitext(os.path.basename(upload.filename))[0])
    path = os.path.join(settings.upload_dir, f"{session.session_id}_{stem}{extension}")
    with open(path, "wb") as f:
        f.write(file_bytes)
    logger.info("Saved upload %s (%d bytes)", path, len(file_bytes))
    return path


def remove_upload(path: str) -> None:
    if path and os.path.exists(path):
        os.remove(path)


# --------------------------------------------
# FASTAPI APP
# --------------------------------------------
app = FastAPI(title="HMI Agent", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

os.makedirs(settings.output_dir, exist_ok=True)
app.mount("/outputs", StaticFiles(directory=settings.output_dir), name="outputs")


@app.post("/api/generate-workflow", response_model=WorkflowStageResponse)
async def generate_workflow(
    fds_document: UploadFile = File(..., alias="fdsDocument"),
    settings: Settings = Depends(get_settings),
    pipeline: HMIPipeline = Depends(get_pipeline),
):
    session = sessions.create()
    try:
        session.document_path = await save_upload(fds_document, settings, session)
        workflow = await run_in_threadpool(pipeline.run_workflow_stage, session)
    except HTTPException:
        sessions.discard(session.session_id)
        raise
    except SessionError as e:
        raise session_http_error(e)
    finally:
        remove_upload(session.document_path)

    return WorkflowStageResponse(
        message=f"Workflow generated with {workflow.system_overview.total_screens} screens",
        data=workflow,
        session_id=session.session_id,
    )


@app.post("/api/generate-screens", response_model=ScreensStageResponse)
def generate_screens(request: GenerateScreensRequest, pipeline: HMIPipeline = Depends(get_pipeline)):
    try:
        session = sessions.get(request.session_id)
        result = pipeline.run_screen_stage(session)
        sessions.finish(session.session_id)
    except SessionError as e:
        raise session_http_error(e)

    return ScreensStageResponse(
        message=f"Generated {result.summary.successful_screens} of {result.summary.total_screens} screens",
        data=result,
        session_id=session.session_id,
    )


@app.post("/api/generate-hmi", response_model=HMIResponse)
async def generate_hmi(
    fds_document: UploadFile = File(..., alias="fdsDocument"),
    settings: Settings = Depends(get_settings),
    pipeline: HMIPipeline = Depends(get_pipeline),
):
    session = sessions.create()
    try:
        session.document_path = await save_upload(fds_document, settings, session)
        await run_in_threadpool(pipeline.run_workflow_stage, session)
        result = await run_in_threadpool(pipeline.run_screen_stage, session)
    except SessionError as e:
        raise session_http_error(e)
    finally:
        remove_upload(session.document_path)
        sessions.discard(session.session_id)

    return HMIResponse(
        message=f"HMI screens generated successfully ({result.summary.status})",
        data=result,
    )


@app.get("/api/progress/{session_id}", response_model=ProgressResponse)
def get_progress(session_id: str):
    try:
        session = sessions.get(session_id)
    except SessionError as e:
        raise session_http_error(e)
    return ProgressResponse(session_id=session.session_id, status=session.status, events=list(session.events))


@app.delete("/api/sessions/{session_id}")
def cancel_session(session_id: str):
    try:
        sessions.cancel(session_id)
    except SessionError as e:
        raise session_http_error(e)
    return {"success": True, "message": f"Session {session_id} cancelled"}


@app.get("/api/prompts")
def get_prompts():
    return {"version": PROMPT_VERSION, "prompts": PROMPT_TEMPLATES}


@app.get("/api/health", response_model=HealthResponse)
def health(settings: Settings = Depends(get_settings)):
    return HealthResponse(
        timestamp=datetime.now().isoformat(),
        llm_model=settings.groq_model,
        has_llm_credentials=settings.has_llm_credentials,
    )
