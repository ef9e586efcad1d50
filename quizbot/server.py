"""HTTP + WebSocket surface: start sessions, health probe, live event stream."""
import asyncio
import logging
from typing import Any, Callable, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator, model_validator

from .config import Settings
from .errors import ConfigError
from .events import EventBroadcaster, SessionEvent
from .models import SessionConfig
from .registry import SessionRegistry
from .session import QuizSession

logger = logging.getLogger("quizbot")

VERSION = "1.0.0"


class StartQuizRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reasoning_api_key: str = Field(alias="reasoningApiKey", min_length=1)
    target_url: HttpUrl = Field(alias="targetUrl")
    auth_entry_url: Optional[HttpUrl] = Field(default=None, alias="authEntryUrl")
    identity: Optional[str] = None
    secret: Optional[str] = None
    delay_min: float = Field(default=2.0, alias="delayMin", ge=0)
    delay_max: float = Field(default=5.0, alias="delayMax", ge=0)
    headless: bool = True
    auto_submit: bool = Field(default=True, alias="autoSubmit")
    provider: Optional[str] = None
    model: Optional[str] = None

    @field_validator("reasoning_api_key")
    @classmethod
    def key_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reasoning API key is required")
        return v

    @model_validator(mode="after")
    def delays_ordered(self) -> "StartQuizRequest":
        if self.delay_min > self.delay_max:
            raise ValueError("delayMin must not be greater than delayMax")
        return self

    def to_config(self, settings: Settings) -> SessionConfig:
        return SessionConfig(
            reasoning_api_key=self.reasoning_api_key,
            target_url=str(self.target_url),
            auth_entry_url=str(self.auth_entry_url) if self.auth_entry_url else None,
            identity=self.identity or None,
            secret=self.secret or None,
            delay_min=self.delay_min,
            delay_max=self.delay_max,
            headless=self.headless,
            auto_submit=self.auto_submit,
            provider=(self.provider or settings.provider).lower(),
            model=self.model or settings.model,
            screenshot_dir=settings.screenshot_dir,
        )


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[Callable[[SessionConfig, SessionRegistry, EventBroadcaster], Any]] = None,
) -> FastAPI:
    """
    Build the app with one registry and one broadcaster for the whole process.
    session_factory(config, registry, broadcaster) must return an object with session_id and start().
    """
    settings = settings or Settings.from_env()
    registry = SessionRegistry()
    broadcaster = EventBroadcaster()

    def default_factory(config: SessionConfig, reg: SessionRegistry, bc: EventBroadcaster) -> QuizSession:
        return QuizSession(config, bc, registry=reg, results_dir=settings.results_dir)

    make_session = session_factory or default_factory

    app = FastAPI(title="Quiz Bot", version=VERSION)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.broadcaster = broadcaster

    @app.get("/")
    async def root():
        """Service information."""
        return {
            "service": "Quiz Bot",
            "status": "running",
            "version": VERSION,
            "endpoints": {
                "start": "POST /api/start-quiz",
                "health": "GET /api/health",
                "events": "WS /ws",
            },
        }

    @app.post("/api/start-quiz")
    async def start_quiz(req: StartQuizRequest):
        try:
            config = req.to_config(settings)
        except ConfigError as e:
            raise HTTPException(status_code=400, detail=str(e))
        session = make_session(config, registry, broadcaster)
        session.start()
        logger.info("Started session %s for %s", session.session_id, config.target_url)
        return {"success": True, "sessionId": session.session_id, "message": "Quiz bot started"}

    @app.get("/api/health")
    async def health():
        return {
            "status": "healthy",
            "activeSessions": registry.snapshot_size(),
            "uptime": registry.uptime(),
        }

    @app.websocket("/ws")
    async def events(ws: WebSocket):
        await ws.accept()
        queue = broadcaster.subscribe()
        logger.debug("Observer connected (%d total)", broadcaster.observer_count)
        try:
            await ws.send_json(SessionEvent(kind="info", message="Connected to Quiz Bot server").to_dict())
            receiver = asyncio.create_task(_drain_incoming(ws))
            try:
                while True:
                    getter = asyncio.create_task(queue.get())
                    done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
                    if receiver in done:
                        getter.cancel()
                        break
                    await ws.send_json(getter.result().to_dict())
            finally:
                receiver.cancel()
        except WebSocketDisconnect:
            pass
        finally:
            broadcaster.unsubscribe(queue)
            logger.debug("Observer disconnected (%d left)", broadcaster.observer_count)

    return app


async def _drain_incoming(ws: WebSocket) -> None:
    """Ignore client frames, text or binary; return when the client goes away."""
    while True:
        message = await ws.receive()
        if message["type"] == "websocket.disconnect":
            return
