from abc import ABC, abstractmethod
from typing import List, Optional
from paperchat.models.paper import Paper
from paperchat.models.chat import ChatSession, ChatMessage

class PaperStore(ABC):
    """Read access to papers and their extraction trees."""

    @abstractmethod
    def get_paper(self, paper_id: str) -> Optional[Paper]:
        pass

    @abstractmethod
    def save_paper(self, paper: Paper) -> None:
        pass

class ChatStore(ABC):
    @abstractmethod
    def save_session(self, session: ChatSession) -> ChatSession:
        """Insert or replace a session record."""
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[ChatSession]:
        pass

    @abstractmethod
    def list_sessions(self, paper_id: str, active_only: bool = True) -> List[ChatSession]:
        """Sessions for a paper, most recent message first."""
        pass

    @abstractmethod
    def save_message(self, message: ChatMessage) -> ChatMessage:
        pass

    @abstractmethod
    def list_messages(self, session_id: str) -> List[ChatMessage]:
        """All messages of a session, oldest first."""
        pass

    @abstractmethod
    def recent_messages(self, session_id: str, limit: int) -> List[ChatMessage]:
        """The newest ``limit`` messages of a session, oldest first."""
        pass
