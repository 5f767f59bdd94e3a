import logging
from fastapi import APIRouter, Depends, Request

from paperchat.models.chat import ChatRequest, ChatResponse
from paperchat.core.pipeline.chat import ChatPipeline

router = APIRouter()
logger = logging.getLogger(__name__)

# Dependency to get ChatPipeline from app state
def get_chat_pipeline(request: Request) -> ChatPipeline:
    return request.app.state.chat_pipeline

@router.post("/papers/{paper_id}/chat", response_model=ChatResponse, summary="Ask a question about a paper")
def chat_with_paper(
    paper_id: str,
    request_data: ChatRequest,
    pipeline: ChatPipeline = Depends(get_chat_pipeline)
):
    """
    Runs one chat turn. Failures come back as success=false with an apology
    rather than an HTTP error; an unknown or missing session id starts a new session.
    """
    logger.info(f"Chat request for paper {paper_id}: '{request_data.message[:100]}'")
    return pipeline.chat(paper_id, request_data)
