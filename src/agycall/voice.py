"""Speech synthesis providers.

The conversation manager only needs four things from a voice: ``speak``,
``stop``, ``get_voices`` and ``set_voice`` (plus ``is_supported`` so a call
can refuse to start without one). Providers here:

* ``TextOnlyVoiceProvider``: no audio at all, records what would be said.
* ``ElevenLabsVoiceProvider``: premium voices over the ElevenLabs REST API.
* ``FallbackVoiceProvider``: primary + fallback behind a circuit breaker, so
  a flaky premium voice degrades to the fallback instead of going silent.

The Pipecat frame-pushing provider used on phone calls lives in
``agycall.processor``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from agycall.agent_types import AgentType
from agycall.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


class VoiceProviderError(RuntimeError):
    """Raised when a voice provider is unavailable or misconfigured."""


@dataclass
class VoiceOptions:
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    language: str = "en-US"
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.0


@dataclass
class VoiceInfo:
    id: str
    name: str
    language: str
    provider: str
    gender: str = "neutral"
    category: str = ""
    accent: str = ""
    description: str = ""
    preview_url: str = ""


MALE_NAMES = ("antoni", "arnold", "adam", "sam", "josh", "daniel", "bill", "charlie", "thomas", "michael")
FEMALE_NAMES = ("bella", "rachel", "domi", "elli", "freya", "grace", "isabella", "matilda", "nicole", "dorothy")


def infer_gender(voice_name: str) -> str:
    name = voice_name.lower()
    if any(n in name for n in MALE_NAMES):
        return "male"
    if any(n in name for n in FEMALE_NAMES):
        return "female"
    return "neutral"


class VoiceProvider(ABC):
    name = "abstract"

    @abstractmethod
    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        """Say ``text``; returns once playback (or synthesis) has finished."""

    @abstractmethod
    def stop(self) -> None:
        """Stop whatever is currently being said."""

    @abstractmethod
    def set_voice(self, voice_id: str) -> None: ...

    def is_supported(self) -> bool:
        return True

    async def get_voices(self) -> list[VoiceInfo]:
        return []

    async def close(self) -> None:
        """Release network resources. Safe to call more than once."""


class TextOnlyVoiceProvider(VoiceProvider):
    name = "text"

    def __init__(self):
        self.spoken: list[str] = []
        self.voice_id = ""
        self.stop_count = 0

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        self.spoken.append(text)

    def stop(self) -> None:
        self.stop_count += 1

    def set_voice(self, voice_id: str) -> None:
        self.voice_id = voice_id

    async def get_voices(self) -> list[VoiceInfo]:
        return [VoiceInfo(id="text", name="Text only", language="en-US", provider=self.name)]


DEFAULT_ELEVENLABS_VOICES = [
    VoiceInfo(id="EXAVITQu4vr4xnSDxMaL", name="Bella", language="en-US", provider="elevenlabs",
              gender="female", category="premade", accent="american", description="Young, soft and pleasant"),
    VoiceInfo(id="ErXwobaYiN019PkySvjV", name="Antoni", language="en-US", provider="elevenlabs",
              gender="male", category="premade", accent="american", description="Well-rounded and versatile"),
    VoiceInfo(id="VR6AewLTigWG4xSOukaG", name="Arnold", language="en-US", provider="elevenlabs",
              gender="male", category="premade", accent="american", description="Crisp and authoritative"),
    VoiceInfo(id="pNInz6obpgDQGcFmaJgB", name="Adam", language="en-US", provider="elevenlabs",
              gender="male", category="premade", accent="american", description="Deep and resonant"),
]


class ElevenLabsVoiceProvider(VoiceProvider):
    """ElevenLabs text-to-speech over HTTP.

    There is no local speaker to play through, so synthesized MP3 bytes are
    handed to ``audio_sink`` (if given) and kept on ``last_audio``. ``stop()``
    drops the result of any synthesis still in flight.
    """

    name = "elevenlabs"
    BASE_URL = "https://api.elevenlabs.io/v1"
    DEFAULT_VOICE_ID = "EXAVITQu4vr4xnSDxMaL"  # Bella

    def __init__(
        self,
        api_key: str,
        *,
        voice_id: str = DEFAULT_VOICE_ID,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        audio_sink: Callable[[bytes], Awaitable[None]] | None = None,
    ):
        self.api_key = api_key
        self.voice_id = voice_id
        self.audio_sink = audio_sink
        self.last_audio: bytes | None = None
        self._generation = 0
        if client is not None:
            self._client = client
        else:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                headers={"xi-api-key": api_key},
                timeout=timeout,
            )

    async def close(self) -> None:
        await self._client.aclose()

    def is_supported(self) -> bool:
        return bool(self.api_key)

    def set_voice(self, voice_id: str) -> None:
        self.voice_id = voice_id

    def stop(self) -> None:
        self._generation += 1
        self.last_audio = None

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        self.stop()
        generation = self._generation
        opts = options or VoiceOptions()
        try:
            resp = await self._client.post(
                f"/text-to-speech/{self.voice_id}",
                headers={"Accept": "audio/mpeg", "Content-Type": "application/json"},
                json={
                    "text": text,
                    "voice_settings": {
                        "stability": opts.stability,
                        "similarity_boost": opts.similarity_boost,
                        "style": opts.style,
                    },
                },
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise VoiceProviderError(f"ElevenLabs synthesis failed: {e}") from e

        if generation != self._generation:
            logger.debug("Speech stopped while synthesizing, dropping audio")
            return
        self.last_audio = resp.content
        if self.audio_sink is not None:
            await self.audio_sink(resp.content)

    async def get_voices(self) -> list[VoiceInfo]:
        try:
            resp = await self._client.get("/voices")
            resp.raise_for_status()
            voices = resp.json().get("voices", [])
        except Exception as e:
            logger.error("Fetching ElevenLabs voices failed: %s", e)
            return list(DEFAULT_ELEVENLABS_VOICES)

        return [
            VoiceInfo(
                id=v["voice_id"],
                name=v.get("name", ""),
                language="en-US",
                provider=self.name,
                gender=infer_gender(v.get("name", "")),
                category=v.get("category") or "generated",
                accent=(v.get("labels") or {}).get("accent", "american"),
                description=v.get("description") or "",
                preview_url=v.get("preview_url") or "",
            )
            for v in voices
        ]


class FallbackVoiceProvider(VoiceProvider):
    """Speak with ``primary``; on failure (or while its breaker is open) use ``fallback``."""

    name = "fallback"

    def __init__(
        self,
        *,
        primary: VoiceProvider,
        fallback: VoiceProvider,
        failure_threshold: int = 3,
        cooldown_seconds: float = 60.0,
    ):
        self.primary = primary
        self.fallback = fallback
        self._circuit = CircuitBreaker(
            failure_threshold=failure_threshold,
            cooldown_seconds=cooldown_seconds,
            label=f"{primary.name} voice",
        )

    def is_supported(self) -> bool:
        return self.primary.is_supported() or self.fallback.is_supported()

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        if self._circuit.allow() and self.primary.is_supported():
            try:
                await self.primary.speak(text, options)
                self._circuit.record_success()
                return
            except Exception:
                logger.exception("Primary voice %s failed", self.primary.name)
                self._circuit.record_failure()
        else:
            logger.info("Primary voice unavailable, using %s directly", self.fallback.name)
        await self.fallback.speak(text, options)

    def stop(self) -> None:
        self.primary.stop()
        self.fallback.stop()

    def set_voice(self, voice_id: str) -> None:
        self.primary.set_voice(voice_id)
        self.fallback.set_voice(voice_id)

    async def get_voices(self) -> list[VoiceInfo]:
        return await self.primary.get_voices()

    async def close(self) -> None:
        await self.primary.close()
        await self.fallback.close()


def create_voice_provider(kind: str, api_key: str | None = None, *, text_fallback: bool = False) -> VoiceProvider:
    """Build a provider by name: ``text`` or ``elevenlabs``.

    Raises VoiceProviderError for unknown kinds or a missing ElevenLabs key.
    """
    if kind == "text":
        return TextOnlyVoiceProvider()
    if kind == "elevenlabs":
        if not api_key:
            raise VoiceProviderError("ElevenLabs API key is required")
        provider = ElevenLabsVoiceProvider(api_key)
        if text_fallback:
            return FallbackVoiceProvider(primary=provider, fallback=TextOnlyVoiceProvider())
        return provider
    raise VoiceProviderError(f"Unsupported voice provider: {kind}")


VOICE_CONFIGS = {
    AgentType.PRIMARY.value: {
        "voice_id": "EXAVITQu4vr4xnSDxMaL",  # Bella - friendly and professional
        "settings": {"stability": 0.5, "similarity_boost": 0.75, "style": 0.0},
    },
    AgentType.BREAKDOWN.value: {
        "voice_id": "pNInz6obpgDQGcFmaJgB",  # Adam - calm and authoritative
        "settings": {"stability": 0.7, "similarity_boost": 0.8, "style": 0.1},
    },
    AgentType.JOB_APPLICATION.value: {
        "voice_id": "ErXwobaYiN019PkySvjV",  # Antoni - warm and engaging
        "settings": {"stability": 0.6, "similarity_boost": 0.75, "style": 0.2},
    },
    AgentType.GENERAL.value: {
        "voice_id": "VR6AewLTigWG4xSOukaG",  # Arnold - professional and helpful
        "settings": {"stability": 0.6, "similarity_boost": 0.8, "style": 0.0},
    },
}


def voice_config(agent_type: str) -> dict:
    return VOICE_CONFIGS.get(agent_type, VOICE_CONFIGS[AgentType.PRIMARY.value])


def voice_options(agent_type: str) -> VoiceOptions:
    return VoiceOptions(**voice_config(agent_type)["settings"])
