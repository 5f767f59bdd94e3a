import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paperchat.storage.paper_store import LocalPaperStore
from paperchat.storage.chat_store import LocalChatStore
from paperchat.core.pipeline.chat import ChatPipeline
from paperchat.core.pipeline.sessions import ChatSessionService
from paperchat.core.generate.llm_client import LLMClient
from paperchat.config.settings import settings

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup: Initialize singletons ---
    logger.info("Initializing paper chat storage and pipelines...")

    # 1. Initialize Storage Implementations
    paper_store = LocalPaperStore(settings.storage.papers_path)
    chat_store = LocalChatStore(settings.storage.chat_path)

    # 2. Initialize Pipelines
    llm_client = LLMClient()
    chat_pipeline = ChatPipeline(
        paper_store=paper_store,
        chat_store=chat_store,
        llm_client=llm_client
    )
    session_service = ChatSessionService(chat_pipeline, chat_store)

    # 3. Store in app.state for dependency injection
    app.state.paper_store = paper_store
    app.state.chat_store = chat_store
    app.state.llm_client = llm_client
    app.state.chat_pipeline = chat_pipeline
    app.state.session_service = session_service

    logger.info("Initialization complete. All systems ready.")

    yield

    # --- Shutdown ---
    logger.info("Shutting down paper chat backend...")

# Create FastAPI instance
app = FastAPI(
    title="PaperChat API",
    description="Query-aware retrieval and prompt assembly for chatting with research papers",
    version="1.0.0",
    lifespan=lifespan
)

# Global CORS Configuration (Minimal for demo)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"], # Common frontend ports
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health Check Endpoint
@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}

from paperchat.api.routes import chat, sessions

app.include_router(chat.router, prefix="/api", tags=["Chat"])
app.include_router(sessions.router, prefix="/api", tags=["Sessions"])

@app.get("/", tags=["System"])
def root():
    return {"message": "PaperChat API is running."}
