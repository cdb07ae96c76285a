"""
Pydantic models for podcast documents, synthesis requests and run logs.
"""

import os
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Literal, Optional, Tuple
from datetime import datetime

from ..config import DEFAULT_HOST_LANG, POLLY_PRESETS


class PodcastSpec(BaseModel):
    """Podcast document as written by the user."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(description="Spoken title of the episode")
    lang: str = Field(description="Language tag of the phrases being learned")
    host_lang: str = Field(
        default=DEFAULT_HOST_LANG,
        alias="hostLang",
        description="Language tag the listener already speaks"
    )
    phrase_set: List[Tuple[str, str]] = Field(
        alias="set",
        description="Ordered (learning phrase, fluent phrase) pairs"
    )

    @field_validator("host_lang", mode="before")
    @classmethod
    def _default_host_lang(cls, value: Any) -> Any:
        # An explicit null means "use the default", same as leaving the key out.
        return DEFAULT_HOST_LANG if value is None else value


class PhraseEntry(BaseModel):
    """A single phrase to be spoken, tagged with the language it is spoken in."""
    model_config = ConfigDict(frozen=True)

    is_host_language: bool
    text: str


class SynthesisRequest(BaseModel):
    """Parameters for one Polly synthesize_speech call."""
    text: str = Field(description="SSML marked-up text")
    voice_id: str
    language_code: str
    output_format: str = POLLY_PRESETS["OutputFormat"]
    text_type: str = POLLY_PRESETS["TextType"]
    engine: str = POLLY_PRESETS["Engine"]
    sample_rate: str = POLLY_PRESETS["SampleRate"]

    def to_polly_params(self) -> Dict[str, Any]:
        return {
            "Text": self.text,
            "TextType": self.text_type,
            "VoiceId": self.voice_id,
            "LanguageCode": self.language_code,
            "OutputFormat": self.output_format,
            "Engine": self.engine,
            "SampleRate": self.sample_rate,
        }


class SynthesizedClip(BaseModel):
    """Raw audio returned for the phrase at ``index``."""
    index: int
    audio: bytes
    characters: int = 0


class ClipPair(BaseModel):
    """Learning-language clip and the fluent-language clip it translates."""
    model_config = ConfigDict(frozen=True)

    learning: str
    fluent: str


def _concat_line(path: str) -> str:
    name = os.path.basename(path).replace("'", "'\\''")
    return f"file '{name}'"


class PlaylistManifest(BaseModel):
    """Ordered clip references consumed by the ffmpeg concat demuxer."""
    entries: List[str] = Field(default_factory=list)

    def to_concat_script(self) -> str:
        return "\n".join(_concat_line(entry) for entry in self.entries)


class StageMetrics(BaseModel):
    """Metrics for a single pipeline stage or synthesis call."""
    stage_name: str = Field(description="Name of the pipeline stage")
    execution_time_seconds: float = Field(description="Time taken to execute this stage")
    characters_billed: int = Field(default=0, description="Characters billed by the speech service")
    cost_usd: float = Field(default=0.0, description="Estimated cost in USD for this stage")
    voice_id: Optional[str] = Field(default=None, description="Voice used for this stage")
    engine: Optional[str] = Field(default=None, description="Speech engine used for this stage")


class RunLog(BaseModel):
    """Complete log of one podcast generation run."""
    run_id: str = Field(description="Unique identifier for this run")
    source_file: str = Field(description="Podcast JSON file")
    title: Optional[str] = Field(default=None, description="Podcast title")
    start_time: datetime = Field(description="Run start timestamp")
    end_time: Optional[datetime] = Field(default=None, description="Run end timestamp")
    total_execution_time_seconds: Optional[float] = Field(default=None, description="Total execution time")
    stage_metrics: List[StageMetrics] = Field(description="Metrics for each stage")
    total_characters: int = Field(default=0, description="Characters billed across all calls")
    total_cost_usd: float = Field(description="Total estimated cost in USD")
    status: Literal["running", "completed", "failed"] = Field(description="Run status")
    error_message: Optional[str] = Field(default=None, description="Error message if the run failed")
    output_path: Optional[str] = Field(default=None, description="Path of the assembled podcast")
