import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from debate_arena.api.routes import router
from debate_arena.database import Base, get_engine
from debate_arena.services.debate import DebateSupervisor, build_orchestrator

# Import models so SQLAlchemy knows about every table when creating them
import debate_arena.models  # noqa: F401

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


# =============================================================================
# LIFESPAN: Startup and Shutdown Logic
# =============================================================================
#
# Startup: enable pgvector, create tables, create the debate supervisor.
# Shutdown: cancel debates still running, close the HTTP clients, then the
# connection pool.
#
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    engine = get_engine()

    # === STARTUP ===
    async with engine.begin() as conn:
        # Research documents carry an embedding column
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)

    app.state.supervisor = DebateSupervisor(build_orchestrator())

    yield

    # === SHUTDOWN ===
    await app.state.supervisor.shutdown()
    await app.state.supervisor.orchestrator.close()
    await engine.dispose()


app = FastAPI(
    title="Debate Arena",
    description="Multi-agent debate engine with live fact-checking",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
