from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field

class ChatRole(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"

class SelectionContext(BaseModel):
    from_: int | None = Field(default=None, alias="from")
    to: int | None = None
    page_number: int | None = None
    section_title: str | None = None

    model_config = {"populate_by_name": True}

class ChatSession(BaseModel):
    session_id: str
    paper_id: str
    user_id: str | None = None
    title: str = "New Chat"
    message_count: int = 0
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime
    is_active: bool = True

class ChatMessage(BaseModel):
    message_id: str
    session_id: str
    role: ChatRole
    content: str
    timestamp: datetime
    selection: SelectionContext | None = None
    context_metadata: str | None = None      # JSON-serialised ContextMetadata, assistant only

class ContextMetadata(BaseModel):
    sections_used: list[str] = []
    figures_referenced: list[str] = []
    tables_referenced: list[str] = []
    equations_used: list[str] = []
    pages_referenced: list[int] = []
    content_sources: list[str] = []
    confidence_score: float | None = None
    chunks_used: int | None = None
    had_specific_references: bool | None = None
    query_type: str | None = None

class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)
    session_id: str | None = None
    session_title: str | None = None
    selected_text: str | None = None
    selection_context: SelectionContext | None = None

class ChatResponse(BaseModel):
    session_id: str | None = None
    response: str
    timestamp: datetime
    success: bool
    context: ContextMetadata | None = None
    error: str | None = None

class CreateSessionRequest(BaseModel):
    initial_message: str = Field(min_length=1, max_length=2000)
    user_id: str | None = None
    custom_title: str | None = None
    selected_text: str | None = None
    selection_context: SelectionContext | None = None

class RenameSessionRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)

class ChatSessionSummary(BaseModel):
    session_id: str
    paper_id: str
    title: str
    created_at: datetime
    last_message_at: datetime
    message_count: int
    is_active: bool
    last_message_preview: str | None = None

class ChatMessageView(BaseModel):
    message_id: str
    session_id: str
    role: ChatRole
    content: str
    timestamp: datetime
    context_metadata: ContextMetadata | None = None

class SessionStats(BaseModel):
    total_messages: int = 0
    user_messages: int = 0
    assistant_messages: int = 0
    first_message_at: datetime | None = None
    last_message_at: datetime | None = None

class ChatSessionHistory(BaseModel):
    session_id: str
    paper_id: str
    title: str
    created_at: datetime
    last_message_at: datetime
    message_count: int
    is_active: bool
    messages: list[ChatMessageView]
    stats: SessionStats

class CreateSessionResult(BaseModel):
    session: ChatSessionSummary
    response: ChatResponse
