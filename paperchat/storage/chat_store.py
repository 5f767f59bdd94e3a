import os
import json
import threading
from typing import Any, List, Optional
from paperchat.models.chat import ChatSession, ChatMessage
from paperchat.storage.base import ChatStore
from paperchat.core.errors import PersistenceFailure

class LocalChatStore(ChatStore):
    """
    Implements ChatStore using the local disk.
    - sessions/<session_id>.json holds the session record.
    - messages/<session_id>.json holds the session's messages as a JSON list.
    Writes are last-writer-wins; a process-wide lock keeps each file write whole.
    """

    def __init__(self, chat_path: str = "./data/chat"):
        self.sessions_path = os.path.join(chat_path, "sessions")
        self.messages_path = os.path.join(chat_path, "messages")
        os.makedirs(self.sessions_path, exist_ok=True)
        os.makedirs(self.messages_path, exist_ok=True)
        self._lock = threading.Lock()

    # --- Sessions ---

    def save_session(self, session: ChatSession) -> ChatSession:
        path = os.path.join(self.sessions_path, f"{session.session_id}.json")
        self._write(path, session.model_dump(mode="json"))
        return session

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        data = self._read(os.path.join(self.sessions_path, f"{session_id}.json"))
        return ChatSession(**data) if data is not None else None

    def list_sessions(self, paper_id: str, active_only: bool = True) -> List[ChatSession]:
        sessions = []
        for name in os.listdir(self.sessions_path):
            if not name.endswith(".json"):
                continue
            data = self._read(os.path.join(self.sessions_path, name))
            if data is None:
                continue
            session = ChatSession(**data)
            if session.paper_id != paper_id:
                continue
            if active_only and not session.is_active:
                continue
            sessions.append(session)
        return sorted(sessions, key=lambda s: s.last_message_at, reverse=True)

    # --- Messages ---

    def save_message(self, message: ChatMessage) -> ChatMessage:
        path = self._messages_file(message.session_id)
        with self._lock:
            messages = self._read(path, locked=True) or []
            messages.append(message.model_dump(mode="json", by_alias=True))
            self._write(path, messages, locked=True)
        return message

    def list_messages(self, session_id: str) -> List[ChatMessage]:
        data = self._read(self._messages_file(session_id)) or []
        messages = [ChatMessage(**m) for m in data]
        return sorted(messages, key=lambda m: m.timestamp)

    def recent_messages(self, session_id: str, limit: int) -> List[ChatMessage]:
        if limit <= 0:
            return []
        return self.list_messages(session_id)[-limit:]

    # --- Helpers ---

    def _messages_file(self, session_id: str) -> str:
        return os.path.join(self.messages_path, f"{session_id}.json")

    def _read(self, path: str, locked: bool = False) -> Any:
        if not os.path.exists(path):
            return None
        try:
            if locked:
                return self._load(path)
            with self._lock:
                return self._load(path)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Could not read {path}: {e}") from e

    def _write(self, path: str, data: Any, locked: bool = False) -> None:
        try:
            if locked:
                self._dump(path, data)
            else:
                with self._lock:
                    self._dump(path, data)
        except OSError as e:
            raise PersistenceFailure(f"Could not write {path}: {e}") from e

    @staticmethod
    def _load(path: str) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def _dump(path: str, data: Any) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
