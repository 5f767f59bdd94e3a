class PaperChatError(Exception):
    """Base class for errors raised by the paper chat engine."""

class PaperNotFound(PaperChatError):
    def __init__(self, paper_id: str):
        super().__init__(f"Paper not found with ID: {paper_id}")
        self.paper_id = paper_id

class PaperNotExtracted(PaperChatError):
    def __init__(self, paper_id: str):
        super().__init__(
            f"Paper {paper_id} has not been extracted yet. Please wait for extraction to complete."
        )
        self.paper_id = paper_id

class SessionNotFound(PaperChatError):
    def __init__(self, session_id: str):
        super().__init__(f"Chat session not found: {session_id}")
        self.session_id = session_id

class GenerationFailure(PaperChatError):
    """The Generation Service failed, timed out or returned nothing usable."""

class PersistenceFailure(PaperChatError):
    """The Chat Store could not read or write a record."""
