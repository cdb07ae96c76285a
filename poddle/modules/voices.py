"""
Voice selection for host and guest speakers.
Resolvers turn a language tag plus an optional override into a validated Polly voice.
"""

from typing import Callable, Dict, List, Optional

from ..config import POLLY_VOICES
from ..errors import InvalidVoice


def voices_for(language: str, voice_table: Dict[str, List[str]] = POLLY_VOICES) -> List[str]:
    """Return the ordered speakers for a language, or raise InvalidVoice if unsupported."""
    voices = voice_table.get(language)
    if not voices:
        raise InvalidVoice(language)
    return list(voices)


def validate_voice(language: str, voice: str, voice_table: Dict[str, List[str]] = POLLY_VOICES) -> str:
    voices = voices_for(language, voice_table)
    if voice not in voices:
        raise InvalidVoice(language, voice, voices)
    return voice


class StaticVoiceResolver:
    """Uses the override when given, otherwise the first voice listed for the language."""

    def __init__(self, voice_table: Dict[str, List[str]] = None):
        self.voice_table = voice_table or POLLY_VOICES

    def resolve(self, language: str, override: Optional[str] = None) -> str:
        if override:
            return validate_voice(language, override, self.voice_table)
        return voices_for(language, self.voice_table)[0]


class InteractiveVoiceResolver(StaticVoiceResolver):
    """Prompts for a numbered voice when no override is given."""

    def __init__(
        self,
        voice_table: Dict[str, List[str]] = None,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print
    ):
        super().__init__(voice_table)
        self.input_func = input_func
        self.output_func = output_func
        self.chosen: Dict[str, str] = {}  # language -> voice, asked once per batch

    def resolve(self, language: str, override: Optional[str] = None) -> str:
        if override:
            return validate_voice(language, override, self.voice_table)
        if language not in self.chosen:
            self.chosen[language] = self._prompt(language)
        return self.chosen[language]

    def _prompt(self, language: str) -> str:
        voices = voices_for(language, self.voice_table)
        if len(voices) == 1:
            return voices[0]

        self.output_func(f"Voices for {language}:")
        for number, voice in enumerate(voices, start=1):
            self.output_func(f"  {number}. {voice}")

        answer = self.input_func(f"Choose a voice for {language} [1]: ").strip()
        if not answer:
            return voices[0]
        if answer.isdigit() and 1 <= int(answer) <= len(voices):
            return voices[int(answer) - 1]

        # Accept the name itself, case-insensitively.
        for voice in voices:
            if voice.lower() == answer.lower():
                return voice
        raise InvalidVoice(language, answer, voices)
