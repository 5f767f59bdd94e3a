import re
import uuid
import logging
from typing import List, Optional

from pydantic import ValidationError

from paperchat.models.chat import (
    ChatSession, ChatMessage, ChatRole, ChatRequest, ChatResponse, ContextMetadata,
    CreateSessionRequest, CreateSessionResult, ChatSessionSummary, ChatMessageView,
    ChatSessionHistory, SessionStats,
)
from paperchat.core.errors import SessionNotFound
from paperchat.core.pipeline.chat import ChatPipeline, utcnow, DEFAULT_SESSION_TITLE
from paperchat.storage.base import ChatStore
from paperchat.config.settings import settings

logger = logging.getLogger(__name__)

FALLBACK_TITLE = "Research Discussion"
MAX_TITLE_LENGTH = 50
PREVIEW_LENGTH = 100
NO_MESSAGES_PREVIEW = "No messages yet"

TITLE_PROMPT = (
    "Generate a concise, descriptive title (max 50 characters) for a research paper "
    "discussion based on this conversation:\n\n"
    "User: {question}\n\n"
    "Assistant: {answer}\n\n"
    "Title should capture the main topic/question. Examples: 'Machine Learning Algorithms', "
    "'Data Analysis Methods', 'Research Methodology'.\n"
    "Return only the title, no quotes or extra text."
)

_QUOTES = re.compile(r"^[\"']|[\"']$")


def preview(text: Optional[str], length: int = PREVIEW_LENGTH) -> Optional[str]:
    if text is None:
        return None
    return text if len(text) <= length else text[:length - 3] + "..."


class ChatSessionService:
    """
    Session management on top of the chat pipeline: create (with a generated
    title), list, read history, continue, rename and archive.
    Sessions are never deleted, only deactivated.
    """

    def __init__(self, pipeline: ChatPipeline, chat_store: ChatStore):
        self.pipeline = pipeline
        self.chat_store = chat_store
        self.llm_client = pipeline.llm_client

    def create_session(self, paper_id: str, request: CreateSessionRequest) -> CreateSessionResult:
        logger.info(f"Creating chat session for paper {paper_id}: '{preview(request.initial_message)}'")
        # PaperNotFound / PaperNotExtracted propagate to the caller here
        self.pipeline.validate_paper(paper_id)

        now = utcnow()
        session = self.chat_store.save_session(ChatSession(
            session_id=str(uuid.uuid4()),
            paper_id=paper_id,
            user_id=request.user_id,
            title=request.custom_title or DEFAULT_SESSION_TITLE,
            created_at=now,
            updated_at=now,
            last_message_at=now,
        ))

        response = self.pipeline.chat(paper_id, ChatRequest(
            message=request.initial_message,
            session_id=session.session_id,
            selected_text=request.selected_text,
            selection_context=request.selection_context,
        ))

        # The pipeline has updated counters; work from the stored copy
        session = self.chat_store.get_session(session.session_id) or session
        if not request.custom_title:
            title = self.generate_title(request.initial_message, response.response)
            session = self.chat_store.save_session(session.model_copy(update={"title": title}))

        logger.info(f"Created chat session {session.session_id} with title '{session.title}'")
        return CreateSessionResult(
            session=self._summary(session, preview(response.response)),
            response=response,
        )

    def generate_title(self, question: str, answer: str) -> str:
        prompt = TITLE_PROMPT.format(question=preview(question), answer=preview(answer))
        try:
            title = self.llm_client.generate(
                prompt, settings.llm.title_temperature, settings.llm.title_max_tokens
            )
        except Exception as e:
            logger.warning(f"Failed to generate session title, using default: {e}")
            return FALLBACK_TITLE
        title = _QUOTES.sub("", title.strip()).strip()
        if len(title) > MAX_TITLE_LENGTH:
            title = title[:MAX_TITLE_LENGTH - 3] + "..."
        return title or FALLBACK_TITLE

    def list_sessions(self, paper_id: str) -> List[ChatSessionSummary]:
        sessions = self.chat_store.list_sessions(paper_id, active_only=True)
        return [self._summary(s, self._last_message_preview(s.session_id)) for s in sessions]

    def get_history(self, session_id: str) -> ChatSessionHistory:
        session = self._require(session_id)
        messages = self.chat_store.list_messages(session_id)
        return ChatSessionHistory(
            session_id=session.session_id,
            paper_id=session.paper_id,
            title=session.title,
            created_at=session.created_at,
            last_message_at=session.last_message_at,
            message_count=session.message_count,
            is_active=session.is_active,
            messages=[self._message_view(m) for m in messages],
            stats=self.session_stats(messages),
        )

    def continue_chat(self, session_id: str, request: ChatRequest) -> ChatResponse:
        session = self._require(session_id)
        logger.info(f"Continuing chat in session {session_id}: '{preview(request.message)}'")
        return self.pipeline.chat(
            session.paper_id, request.model_copy(update={"session_id": session_id})
        )

    def rename_session(self, session_id: str, title: str) -> ChatSessionSummary:
        session = self._require(session_id)
        logger.info(f"Renaming session {session_id} to '{title}'")
        session = self.chat_store.save_session(
            session.model_copy(update={"title": title, "updated_at": utcnow()})
        )
        return self._summary(session, self._last_message_preview(session_id))

    def archive_session(self, session_id: str) -> None:
        session = self._require(session_id)
        logger.info(f"Archiving session {session_id}")
        self.chat_store.save_session(
            session.model_copy(update={"is_active": False, "updated_at": utcnow()})
        )

    @staticmethod
    def session_stats(messages: List[ChatMessage]) -> SessionStats:
        if not messages:
            return SessionStats()
        return SessionStats(
            total_messages=len(messages),
            user_messages=sum(1 for m in messages if m.role == ChatRole.USER),
            assistant_messages=sum(1 for m in messages if m.role == ChatRole.ASSISTANT),
            first_message_at=messages[0].timestamp,
            last_message_at=messages[-1].timestamp,
        )

    def _require(self, session_id: str) -> ChatSession:
        session = self.chat_store.get_session(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def _last_message_preview(self, session_id: str) -> str:
        last = self.chat_store.recent_messages(session_id, 1)
        return preview(last[0].content) if last else NO_MESSAGES_PREVIEW

    @staticmethod
    def _summary(session: ChatSession, last_message_preview: Optional[str]) -> ChatSessionSummary:
        return ChatSessionSummary(
            session_id=session.session_id,
            paper_id=session.paper_id,
            title=session.title,
            created_at=session.created_at,
            last_message_at=session.last_message_at,
            message_count=session.message_count,
            is_active=session.is_active,
            last_message_preview=last_message_preview,
        )

    @staticmethod
    def _message_view(message: ChatMessage) -> ChatMessageView:
        metadata = None
        if message.role == ChatRole.ASSISTANT and message.context_metadata:
            try:
                metadata = ContextMetadata.model_validate_json(message.context_metadata)
            except ValidationError as e:
                logger.warning(f"Unreadable context metadata on message {message.message_id}: {e}")
        return ChatMessageView(
            message_id=message.message_id,
            session_id=message.session_id,
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            context_metadata=metadata,
        )
