import logging
from typing import List
from fastapi import APIRouter, Depends, Request, HTTPException

from paperchat.models.chat import (
    ChatRequest, ChatResponse, CreateSessionRequest, CreateSessionResult,
    ChatSessionSummary, ChatSessionHistory, RenameSessionRequest,
)
from paperchat.core.pipeline.sessions import ChatSessionService
from paperchat.core.errors import PaperNotFound, PaperNotExtracted, SessionNotFound

router = APIRouter()
logger = logging.getLogger(__name__)

def get_session_service(request: Request) -> ChatSessionService:
    return request.app.state.session_service

@router.post("/papers/{paper_id}/sessions", response_model=CreateSessionResult,
             summary="Start a chat session with an initial message")
def create_session(
    paper_id: str,
    request_data: CreateSessionRequest,
    service: ChatSessionService = Depends(get_session_service)
):
    try:
        return service.create_session(paper_id, request_data)
    except PaperNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PaperNotExtracted as e:
        raise HTTPException(status_code=409, detail=str(e))

@router.get("/papers/{paper_id}/sessions", response_model=List[ChatSessionSummary],
            summary="List active chat sessions for a paper")
def list_sessions(paper_id: str, service: ChatSessionService = Depends(get_session_service)):
    return service.list_sessions(paper_id)

@router.get("/sessions/{session_id}", response_model=ChatSessionHistory,
            summary="Full message history of a session")
def get_session_history(session_id: str, service: ChatSessionService = Depends(get_session_service)):
    try:
        return service.get_history(session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.post("/sessions/{session_id}/messages", response_model=ChatResponse,
             summary="Continue an existing session")
def continue_chat(
    session_id: str,
    request_data: ChatRequest,
    service: ChatSessionService = Depends(get_session_service)
):
    try:
        return service.continue_chat(session_id, request_data)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.patch("/sessions/{session_id}", response_model=ChatSessionSummary, summary="Rename a session")
def rename_session(
    session_id: str,
    request_data: RenameSessionRequest,
    service: ChatSessionService = Depends(get_session_service)
):
    try:
        return service.rename_session(session_id, request_data.title)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.delete("/sessions/{session_id}", summary="Archive a session")
def archive_session(session_id: str, service: ChatSessionService = Depends(get_session_service)):
    """Archived sessions drop out of listings but keep their messages."""
    try:
        service.archive_session(session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"session_id": session_id, "success": True, "message": "Session archived."}
