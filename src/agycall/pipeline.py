import os
import logging
from fastapi import WebSocket

import aiohttp
from pipecat.pipeline.pipeline import Pipeline
from pipecat.pipeline.runner import PipelineRunner
from pipecat.pipeline.task import PipelineParams, PipelineTask
from pipecat.transports.websocket.fastapi import (
    FastAPIWebsocketTransport,
    FastAPIWebsocketParams,
)
from pipecat.serializers.twilio import TwilioFrameSerializer
from pipecat.audio.vad.silero import SileroVADAnalyzer
from pipecat.audio.vad.vad_analyzer import VADParams
from pipecat.services.deepgram.stt import DeepgramSTTService
from pipecat.services.elevenlabs.tts import ElevenLabsHttpTTSService
from pipecat.runner.utils import parse_telephony_websocket

from agycall.agent_types import AgentType
from agycall.config import transfer_delay
from agycall.processor import ConversationProcessor
from agycall.post_call import handle_conversation_ended
from agycall.voice import voice_config

logger = logging.getLogger(__name__)


async def create_pipeline(websocket: WebSocket):
    """Create and run the Pipecat pipeline for a Twilio call.

    Every call starts with the primary agent; transfers switch the script
    and the ElevenLabs voice mid-call.
    """

    # Parse Twilio WebSocket handshake
    transport_type, call_data = await parse_telephony_websocket(websocket)
    logger.info(f"Twilio handshake: transport={transport_type}, keys={list(call_data.keys())}")
    stream_sid = call_data["stream_id"]
    call_sid = call_data["call_id"]
    caller_phone = call_data.get("body", {}).get("From", "")

    logger.info(f"Call started: {call_sid} from {caller_phone or 'unknown'}")

    # Twilio transport
    serializer = TwilioFrameSerializer(
        stream_sid=stream_sid,
        call_sid=call_sid,
        account_sid=os.getenv("TWILIO_ACCOUNT_SID"),
        auth_token=os.getenv("TWILIO_AUTH_TOKEN"),
    )
    transport = FastAPIWebsocketTransport(
        websocket=websocket,
        params=FastAPIWebsocketParams(
            audio_in_enabled=True,
            audio_out_enabled=True,
            add_wav_header=False,
            vad_analyzer=SileroVADAnalyzer(
                params=VADParams(
                    confidence=0.85,   # Ignore road and cab background noise
                    start_secs=0.4,
                    stop_secs=0.3,
                    min_volume=0.8,
                ),
            ),
            serializer=serializer,
        ),
    )

    # Services
    stt = DeepgramSTTService(api_key=os.getenv("DEEPGRAM_API_KEY"))

    http_session = aiohttp.ClientSession()
    tts = ElevenLabsHttpTTSService(
        api_key=os.getenv("ELEVENLABS_API_KEY"),
        voice_id=voice_config(AgentType.PRIMARY.value)["voice_id"],
        aiohttp_session=http_session,
    )

    # Conversation processor: scripted agents between STT and TTS
    conversation = ConversationProcessor(
        session_id=call_sid,
        agent_type=AgentType.PRIMARY.value,
        transfer_delay=transfer_delay(),
    )

    pipeline = Pipeline([
        transport.input(),
        stt,
        conversation,
        tts,
        transport.output(),
    ])

    task = PipelineTask(
        pipeline,
        params=PipelineParams(
            audio_in_sample_rate=8000,
            audio_out_sample_rate=8000,
            allow_interruptions=True,
        ),
    )

    @transport.event_handler("on_client_connected")
    async def on_connected(transport, client):
        await conversation.start_conversation()

    @transport.event_handler("on_client_disconnected")
    async def on_disconnected(transport, client):
        logger.info(f"Client disconnected, ending pipeline for {call_sid}")
        await conversation.end_conversation()

    runner = PipelineRunner()
    try:
        await runner.run(task)
    finally:
        await http_session.close()

    # Post-call: transcript dump and dashboard sync
    try:
        await handle_conversation_ended(conversation.manager.get_state())
    except Exception as e:
        logger.error(f"Post-call handler failed: {e}")

    logger.info(f"Call ended: {call_sid}")
