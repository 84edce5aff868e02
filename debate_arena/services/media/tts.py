"""
Speech synthesis for debate turns.

OpenAI's speech endpoint accepts at most 4096 characters per request, so long
arguments are split on sentence boundaries, synthesized concurrently and the
mp3 chunks concatenated in their original order.
"""

import asyncio
import logging
from typing import Optional

from openai import AsyncOpenAI

from debate_arena.config import get_settings
from debate_arena.services.debate.protocols import BaseSpeechSynthesizer

logger = logging.getLogger(__name__)

TTS_MAX_CHARS = 4096

VALID_VOICES = ("alloy", "echo", "nova", "shimmer")

_SENTENCE_BREAKS = (". ", "! ", "? ", ".\n", "!\n", "?\n")


def split_text(text: str, max_chars: int = TTS_MAX_CHARS) -> list[str]:
    """
    Split text into chunks of at most max_chars.

    Prefers sentence ends, then newlines, then commas, then spaces; cuts hard
    only when a chunk has none of them.
    """
    chunks = []
    remaining = text

    while len(remaining) > max_chars:
        window = remaining[:max_chars]

        cut = max((window.rfind(sep) + len(sep) for sep in _SENTENCE_BREAKS if sep in window), default=0)
        if cut <= 0:
            for sep in ("\n", ", ", " "):
                idx = window.rfind(sep)
                if idx > 0:
                    cut = idx + len(sep)
                    break
        if cut <= 0:
            cut = max_chars

        chunks.append(remaining[:cut].strip())
        remaining = remaining[cut:].lstrip()

    if remaining.strip():
        chunks.append(remaining.strip())
    return chunks


class TTSClient(BaseSpeechSynthesizer):
    """Synthesizes mp3 audio with OpenAI's speech API."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        settings = get_settings()
        self.model = model or settings.tts_model
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout_seconds,
        )

    async def synthesize(self, text: str, voice: str) -> bytes:
        if voice not in VALID_VOICES:
            voice = "alloy"

        chunks = split_text(text)
        buffers = await asyncio.gather(*(self._synthesize_chunk(chunk, voice) for chunk in chunks))

        logger.info(f"Synthesized {len(chunks)} audio chunk(s) with voice '{voice}'")
        return b"".join(buffers)

    async def _synthesize_chunk(self, text: str, voice: str) -> bytes:
        response = await self.client.audio.speech.create(
            model=self.model,
            voice=voice,
            input=text,
            response_format="mp3",
        )
        return response.content
