import uuid
import logging
from enum import Enum
from datetime import datetime, timezone
from typing import Optional

from paperchat.models.paper import Paper, PaperExtraction
from paperchat.models.chat import (
    ChatRequest, ChatResponse, ChatSession, ChatMessage, ChatRole, ContextMetadata,
)
from paperchat.core.errors import PaperNotFound, PaperNotExtracted, PersistenceFailure
from paperchat.core.retrieve.query_analyser import QueryAnalyser
from paperchat.core.retrieve.content_retriever import ContentRetriever
from paperchat.core.retrieve.context_builder import ContextBuilder
from paperchat.core.generate.prompt_builder import PromptBuilder
from paperchat.core.generate.llm_client import LLMClient
from paperchat.core.generate.fallback import fallback_answer
from paperchat.storage.base import PaperStore, ChatStore
from paperchat.config.settings import settings

logger = logging.getLogger(__name__)

ERROR_RESPONSE = (
    "I apologize, but I encountered an error while analyzing the paper. "
    "This might be due to complex content or a temporary issue. "
    "Please try rephrasing your question or try again later."
)
DEFAULT_SESSION_TITLE = "New Chat"


class TurnState(str, Enum):
    VALIDATING = "VALIDATING"
    SESSION_READY = "SESSION_READY"
    CONTENT_RETRIEVED = "CONTENT_RETRIEVED"
    PROMPT_BUILT = "PROMPT_BUILT"
    GENERATING = "GENERATING"
    PERSISTED = "PERSISTED"
    FAILED = "FAILED"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatPipeline:
    """
    Orchestrator for one chat turn against a paper.
    Sequence: validate -> session -> store user message -> analyse -> retrieve
    -> rank -> build prompt -> generate (or fall back) -> store answer.

    ``chat`` never raises: every failure comes back as a ChatResponse.
    """

    def __init__(self,
                 paper_store: PaperStore,
                 chat_store: ChatStore,
                 llm_client: Optional[LLMClient] = None):
        self.paper_store = paper_store
        self.chat_store = chat_store
        self.llm_client = llm_client or LLMClient()
        self.analyser = QueryAnalyser()
        self.retriever = ContentRetriever()
        self.context_builder = ContextBuilder()
        self.prompt_builder = PromptBuilder()

    def chat(self, paper_id: str, request: ChatRequest) -> ChatResponse:
        state = TurnState.VALIDATING
        session: Optional[ChatSession] = None
        logger.info(f"Chat turn for paper {paper_id} (session={request.session_id})")

        try:
            # 1. Validate
            paper = self.validate_paper(paper_id)
            extraction = paper.extraction

            # 2. Session
            session = self.get_or_create_session(paper_id, request.session_id, request.session_title)
            state = TurnState.SESSION_READY
            history = self.chat_store.recent_messages(
                session.session_id, settings.prompt.history_turns * 2
            )

            # 3. The question is stored before anything that can fail downstream
            session = self._store_user_message(session, request)

            # 4. Analyse, retrieve, rank
            analysis = self.analyser.analyse(
                request.message,
                selected_text=request.selected_text,
                has_selection_context=request.selection_context is not None,
            )
            candidates = self.retriever.retrieve(
                extraction, request.message, analysis,
                selected_text=request.selected_text,
                selection_context=request.selection_context,
            )
            bundle = self.context_builder.build(candidates, analysis)
            state = TurnState.CONTENT_RETRIEVED

            # 5. Prompt
            prompt = self.prompt_builder.build(
                extraction, bundle.chunks, history, request.message, analysis,
                selected_text=request.selected_text,
            )
            state = TurnState.PROMPT_BUILT

            # 6. Generate
            state = TurnState.GENERATING
            answer = self._generate(prompt, analysis, extraction)

            # 7. Persist
            metadata = self.context_builder.metadata(bundle, analysis)
            timestamp = self._store_assistant_message(session, answer, metadata)
            state = TurnState.PERSISTED
            logger.info(
                f"Chat turn complete for session {session.session_id} "
                f"({analysis.primary_type.value}, {len(bundle.chunks)} chunks)"
            )
            return ChatResponse(
                session_id=session.session_id,
                response=answer,
                timestamp=timestamp,
                success=True,
                context=metadata,
            )

        except (PaperNotFound, PaperNotExtracted) as e:
            logger.warning(f"Chat turn rejected for paper {paper_id}: {e}")
            return self._error_response(None, str(e))
        except Exception as e:
            logger.exception(f"Chat turn {TurnState.FAILED.value} after {state.value} for paper {paper_id}")
            return self._error_response(session, f"Chat processing error: {e}")

    def validate_paper(self, paper_id: str) -> Paper:
        paper = self.paper_store.get_paper(paper_id)
        if paper is None:
            raise PaperNotFound(paper_id)
        if not paper.is_extracted or paper.extraction is None:
            raise PaperNotExtracted(paper_id)
        return paper

    def get_or_create_session(self, paper_id: str, session_id: Optional[str],
                              title: Optional[str] = None) -> ChatSession:
        """An unknown or missing session id silently starts a new session."""
        if session_id:
            existing = self.chat_store.get_session(session_id)
            if existing is not None:
                return existing
            logger.info(f"Session {session_id} not found, starting a new one")

        now = utcnow()
        session = ChatSession(
            session_id=str(uuid.uuid4()),
            paper_id=paper_id,
            title=title or DEFAULT_SESSION_TITLE,
            message_count=0,
            created_at=now,
            updated_at=now,
            last_message_at=now,
        )
        logger.info(f"Created chat session {session.session_id} for paper {paper_id}")
        return self.chat_store.save_session(session)

    def _store_user_message(self, session: ChatSession, request: ChatRequest) -> ChatSession:
        now = utcnow()
        self.chat_store.save_message(ChatMessage(
            message_id=str(uuid.uuid4()),
            session_id=session.session_id,
            role=ChatRole.USER,
            content=request.message,
            timestamp=now,
            selection=request.selection_context,
        ))
        session = session.model_copy(update={
            "message_count": session.message_count + 1,
            "updated_at": now,
            "last_message_at": now,
        })
        return self.chat_store.save_session(session)

    def _generate(self, prompt: str, analysis, extraction: PaperExtraction) -> str:
        strategy = analysis.prompt_strategy
        try:
            answer = self.llm_client.generate(prompt, strategy.temperature, strategy.max_tokens)
        except Exception as e:
            # The user always gets an answer; metadata-based text stands in
            logger.warning(f"Generation failed, using fallback answer: {e}")
            return fallback_answer(extraction, analysis.data_requirements)
        if not isinstance(answer, str) or not answer.strip():
            logger.warning("Generation returned an empty answer, using fallback answer")
            return fallback_answer(extraction, analysis.data_requirements)
        return answer

    def _store_assistant_message(self, session: ChatSession, answer: str,
                                 metadata: ContextMetadata) -> datetime:
        now = utcnow()
        try:
            self.chat_store.save_message(ChatMessage(
                message_id=str(uuid.uuid4()),
                session_id=session.session_id,
                role=ChatRole.ASSISTANT,
                content=answer,
                timestamp=now,
                context_metadata=metadata.model_dump_json(),
            ))
            self.chat_store.save_session(session.model_copy(update={
                "message_count": session.message_count + 1,
                "updated_at": now,
                "last_message_at": now,
            }))
        except PersistenceFailure as e:
            logger.critical(f"Failed to store assistant message for session {session.session_id}: {e}")
        return now

    @staticmethod
    def _error_response(session: Optional[ChatSession], error: str) -> ChatResponse:
        return ChatResponse(
            session_id=session.session_id if session else None,
            response=ERROR_RESPONSE,
            timestamp=utcnow(),
            success=False,
            error=error,
        )
