"""
Speech request building and synthesis using Amazon Polly.
Expands a podcast into alternating host/guest phrases and synthesizes them
as one paced concurrent batch.
"""

import asyncio
import time
from typing import Awaitable, Callable, List
from xml.sax.saxutils import escape

from ..config import (
    GUEST_SSML_TEMPLATE,
    HOST_SSML_TEMPLATE,
    LANGUAGE_NAMES,
    POLLY_PRESETS,
    QUIZ_INTRO_TEMPLATE,
    RATE_LIMIT_BATCH_SIZE,
    RATE_LIMIT_DELAY_SECONDS,
)
from ..errors import ServiceResponseInvalid
from ..models.schemas import PhraseEntry, PodcastSpec, SynthesisRequest, SynthesizedClip
from ..utils.logging_utils import LoggingManager


def quiz_intro_text(language: str) -> str:
    return QUIZ_INTRO_TEMPLATE.format(language=LANGUAGE_NAMES.get(language, language))


def build_phrase_entries(spec: PodcastSpec) -> List[PhraseEntry]:
    """
    Expand a podcast into the ordered phrases to synthesize.

    The title and quiz intro come first, then each (learning, fluent) pair
    in input order.
    """
    phrases = [
        PhraseEntry(is_host_language=True, text=spec.title),
        PhraseEntry(is_host_language=True, text=quiz_intro_text(spec.lang)),
    ]
    for learning, fluent in spec.phrase_set:
        phrases.append(PhraseEntry(is_host_language=False, text=learning))
        phrases.append(PhraseEntry(is_host_language=True, text=fluent))
    return phrases


def to_ssml(entry: PhraseEntry) -> str:
    """Host phrases at normal speed with a long pause, guest phrases slowed with a short one."""
    template = HOST_SSML_TEMPLATE if entry.is_host_language else GUEST_SSML_TEMPLATE
    return template.format(text=escape(entry.text))


def is_pause_before(index: int, batch_size: int = RATE_LIMIT_BATCH_SIZE) -> bool:
    return index % batch_size == batch_size - 1


class SpeechRequestBuilder:
    """Builds Polly requests for a podcast and collects the raw audio."""

    def __init__(
        self,
        client,
        logger: LoggingManager,
        host_voice: str,
        guest_voice: str,
        request_logger=None,
        sleep: Callable[[float], Awaitable[None]] = None,
        executor=None
    ):
        self.client = client
        self.logger = logger
        self.host_voice = host_voice
        self.guest_voice = guest_voice
        self.request_logger = request_logger
        self.sleep = sleep or asyncio.sleep
        self.executor = executor

    def build_request(self, entry: PhraseEntry, host_lang: str, lang: str) -> SynthesisRequest:
        return SynthesisRequest(
            text=to_ssml(entry),
            voice_id=self.host_voice if entry.is_host_language else self.guest_voice,
            language_code=host_lang if entry.is_host_language else lang,
            output_format=POLLY_PRESETS["OutputFormat"],
            text_type=POLLY_PRESETS["TextType"],
            engine=POLLY_PRESETS["Engine"],
            sample_rate=POLLY_PRESETS["SampleRate"]
        )

    def build_requests(self, spec: PodcastSpec) -> List[SynthesisRequest]:
        return [
            self.build_request(entry, spec.host_lang, spec.lang)
            for entry in build_phrase_entries(spec)
        ]

    def _synthesize_one(self, index: int, request: SynthesisRequest) -> SynthesizedClip:
        """
        Run one synthesize_speech call.

        Args:
            index: Position of the phrase in the podcast
            request: Request to send

        Returns:
            SynthesizedClip carrying the same index
        """
        start_time = time.time()
        response = self.client.synthesize_speech(**request.to_polly_params())

        stream = response.get("AudioStream")
        audio = stream.read() if stream is not None else None
        if stream is not None and hasattr(stream, "close"):
            stream.close()

        if self.request_logger:
            self.request_logger.log_request(
                index,
                request,
                len(audio) if audio is not None else None,
                metadata={
                    "content_type": response.get("ContentType"),
                    "request_characters": response.get("RequestCharacters"),
                }
            )

        if stream is None:
            raise ServiceResponseInvalid(index)
        if not audio:
            raise ServiceResponseInvalid(index, "Empty audio stream")

        characters = response.get("RequestCharacters") or len(request.text)
        self.logger.log_stage_metrics(
            f"tts_phrase_{index}",
            execution_time=time.time() - start_time,
            characters=characters,
            voice_id=request.voice_id,
            engine=request.engine
        )
        return SynthesizedClip(index=index, audio=audio, characters=characters)

    async def synthesize_all_async(self, requests: List[SynthesisRequest]) -> List[SynthesizedClip]:
        """
        Issue every request without waiting on earlier ones, pausing before
        each RATE_LIMIT_BATCH_SIZE-th request to stay under the call quota.
        The first failure aborts the whole batch.
        """
        loop = asyncio.get_running_loop()
        pending = []
        for index, request in enumerate(requests):
            if is_pause_before(index):
                await self.sleep(RATE_LIMIT_DELAY_SECONDS)
            pending.append(
                loop.run_in_executor(self.executor, self._synthesize_one, index, request)
            )

        clips = await asyncio.gather(*pending)

        by_index = {clip.index: clip for clip in clips}
        return [by_index[index] for index in range(len(requests))]

    def synthesize_all(self, requests: List[SynthesisRequest]) -> List[bytes]:
        """Synthesize every request and return the audio buffers in request order."""
        start_time = time.time()
        self.logger.log_step(f"Synthesizing {len(requests)} phrases...")

        clips = asyncio.run(self.synthesize_all_async(requests))

        execution_time = time.time() - start_time
        self.logger.log_stage_metrics("synthesis_batch", execution_time=execution_time)
        self.logger.log_success(f"{len(clips)} phrases synthesized ({execution_time:.1f}s)")
        return [clip.audio for clip in clips]

    def synthesize_podcast(self, spec: PodcastSpec) -> List[bytes]:
        return self.synthesize_all(self.build_requests(spec))
