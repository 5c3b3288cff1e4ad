"""Demo service instrumented with the Boar agent."""

import asyncio
import os
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from pydantic import BaseModel

from boar import Agent, AgentConfig
from boar.api import BoarMiddleware, get_span
from boar.logging_config import setup_logging


class UserResponse(BaseModel):
    """Response model for a user."""

    id: int
    name: str


def create_demo_app(agent: Agent) -> FastAPI:
    """Create a FastAPI app whose requests are recorded by ``agent``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await agent.start()
        yield
        await agent.stop()

    app = FastAPI(title="Boar demo", version="0.1.0", lifespan=lifespan)
    app.add_middleware(BoarMiddleware, agent=agent)

    @app.get("/users", response_model=list[UserResponse])
    async def list_users(request: Request) -> list[dict]:
        span = get_span(request)

        async def query(_span):
            await asyncio.sleep(0.01)
            return [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]

        if span is None:
            return await query(None)
        return await span.ainstrument("db-query", "SELECT * FROM users", query)

    @app.get("/users/{user_id}", response_model=UserResponse)
    async def get_user(user_id: int, request: Request) -> dict:
        span = get_span(request)
        user = {"id": user_id, "name": f"user-{user_id}"}
        if span is not None:
            span.instrument("lookup", "in-memory lookup", lambda _span: None)
        return user

    return app


def main():
    """Run the demo service."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))

    agent = Agent(AgentConfig.from_env())
    app = create_demo_app(agent)

    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
