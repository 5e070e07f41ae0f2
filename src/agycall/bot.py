import os
import sys
import time
import uuid
import logging
from dataclasses import dataclass, field

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request, WebSocket
from fastapi.responses import PlainTextResponse, Response
from loguru import logger as pipecat_logger
from pydantic import BaseModel

from agycall.agent_types import AGENTS, AgentType, parse_agent_type
from agycall.config import transfer_delay, validate_config, voice_provider_kind
from agycall.conversation import ConversationManager
from agycall.pipeline import create_pipeline
from agycall.post_call import handle_conversation_ended
from agycall.session import ConversationMessage
from agycall.voice import VoiceProviderError, create_voice_provider

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _startframe_noise_filter(record) -> bool:
    """Drop Pipecat's "StartFrame not received" chatter from TTS processors."""
    if record["name"].startswith("pipecat.processors.frame_processor"):
        return "StartFrame not received" not in record["message"]
    return True


# Pipecat logs through loguru
pipecat_logger.remove()
pipecat_logger.add(sys.stderr, level=LOG_LEVEL, filter=_startframe_noise_filter)

validate_config()

app = FastAPI(title="AGY Logistics Call Agents")

HOST = os.getenv("PUBLIC_HOST", "agy-call-agents.fly.dev")


# ── Text conversations ──

@dataclass
class StoredConversation:
    manager: ConversationManager
    messages: list = field(default_factory=list)


class ConversationStore:
    """In-memory conversations for the text API, keyed by session id.

    Only conversations that started successfully are stored. Ended ones stay
    readable for ``ended_ttl`` seconds and at most ``max_ended`` of them are
    kept; both limits are enforced whenever a new conversation is added.
    """

    def __init__(self, ended_ttl: float = 300.0, max_ended: int = 200):
        self.ended_ttl = ended_ttl
        self.max_ended = max_ended
        self._conversations: dict[str, StoredConversation] = {}

    def create(self, agent_type: str) -> StoredConversation:
        """Build a conversation without storing it; call ``add`` once it has started."""
        voice = create_voice_provider(
            voice_provider_kind(),
            os.getenv("ELEVENLABS_API_KEY"),
            text_fallback=True,
        )
        manager = ConversationManager(
            voice,
            uuid.uuid4().hex,
            agent_type,
            transfer_delay=transfer_delay(default=0.0),
        )
        stored = StoredConversation(manager=manager)
        manager.set_callbacks(on_message=stored.messages.append)
        return stored

    def add(self, stored: StoredConversation) -> None:
        self.prune()
        self._conversations[stored.manager.state.session_id] = stored

    def get(self, session_id: str) -> StoredConversation | None:
        return self._conversations.get(session_id)

    def prune(self, now: float | None = None) -> int:
        """Drop ended conversations past their TTL, then the oldest beyond the cap."""
        now = time.time() if now is None else now
        ended = sorted(
            (s for s in self._conversations.values() if s.manager.state.has_ended),
            key=lambda s: s.manager.state.ended_at,
        )
        live = [s for s in ended if now - s.manager.state.ended_at <= self.ended_ttl]
        expired = [s for s in ended if now - s.manager.state.ended_at > self.ended_ttl]
        if len(live) > self.max_ended:
            expired.extend(live[:len(live) - self.max_ended])
        for s in expired:
            del self._conversations[s.manager.state.session_id]
        if expired:
            logger.debug("Pruned %d ended conversations", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._conversations)


store = ConversationStore()


class CreateConversationRequest(BaseModel):
    agent_type: str = AgentType.PRIMARY.value


class MessageRequest(BaseModel):
    text: str


def _agent_replies(messages: list[ConversationMessage]) -> list[str]:
    return [m.text for m in messages if m.speaker == "agent"]


def _get_or_404(session_id: str) -> StoredConversation:
    stored = store.get(session_id)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Conversation {session_id} not found")
    return stored


@app.get("/health")
async def health():
    return PlainTextResponse("ok")


@app.get("/agents")
async def list_agents():
    return [
        {
            "id": profile.id,
            "name": profile.name,
            "type": profile.type.value,
            "description": profile.description,
            "scripted_flows": list(profile.scripted_flows),
        }
        for profile in AGENTS.values()
    ]


@app.post("/conversations", status_code=201)
async def create_conversation(body: CreateConversationRequest | None = None):
    body = body or CreateConversationRequest()
    if parse_agent_type(body.agent_type) is None:
        raise HTTPException(status_code=422, detail=f"Unknown agent type: {body.agent_type}")

    stored = None
    try:
        stored = store.create(body.agent_type)
        await stored.manager.start_conversation()
    except VoiceProviderError as e:
        logger.error("Could not start conversation: %s", e)
        if stored is not None:
            await stored.manager.voice.close()
        raise HTTPException(status_code=503, detail=str(e))
    store.add(stored)

    logger.info("Text conversation %s started with %s agent", stored.manager.state.session_id, body.agent_type)
    return {
        "conversation": stored.manager.get_state().to_dict(),
        "replies": _agent_replies(stored.messages),
    }


@app.get("/conversations/{session_id}")
async def get_conversation(session_id: str):
    stored = _get_or_404(session_id)
    return {"conversation": stored.manager.get_state().to_dict()}


@app.post("/conversations/{session_id}/messages")
async def send_message(session_id: str, body: MessageRequest):
    stored = _get_or_404(session_id)
    if stored.manager.state.has_ended:
        raise HTTPException(status_code=409, detail="Conversation has ended")

    before = len(stored.messages)
    await stored.manager.handle_user_input(body.text)
    return {
        "conversation": stored.manager.get_state().to_dict(),
        "replies": _agent_replies(stored.messages[before:]),
    }


@app.delete("/conversations/{session_id}")
async def end_conversation(session_id: str):
    stored = _get_or_404(session_id)
    already_ended = stored.manager.state.has_ended
    await stored.manager.end_conversation()
    if not already_ended:
        await stored.manager.voice.close()
        try:
            await handle_conversation_ended(stored.manager.get_state())
        except Exception as e:
            logger.error(f"Post-call handler failed: {e}")
    return {"conversation": stored.manager.get_state().to_dict()}


# ── Telephony ──

@app.api_route("/twiml", methods=["GET", "POST"])
async def twiml(request: Request):
    """Serve TwiML that tells Twilio to open a WebSocket stream to this server."""
    xml = (
        '<Response>'
        '<Connect>'
        f'<Stream url="wss://{HOST}/ws/twilio" />'
        '</Connect>'
        '</Response>'
    )
    return Response(content=xml, media_type="application/xml")


@app.websocket("/ws/twilio")
async def twilio_websocket(websocket: WebSocket):
    await websocket.accept()
    await create_pipeline(websocket)


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8765"))
    uvicorn.run("agycall.bot:app", host="0.0.0.0", port=port, reload=True)
