"""
Configuration for the language podcast generator.
Contains Polly presets, the supported voice table, drill pacing and mux settings.
"""

from typing import Dict, List


POLLY_PRESETS: Dict[str, str] = {
    "OutputFormat": "ogg_vorbis",
    "TextType": "ssml",
    "Engine": "neural",
    "SampleRate": "24000",
}

# First entry of each list is the default speaker for that language.
POLLY_VOICES: Dict[str, List[str]] = {
    "en-US": [
        "Ivy",
        "Joanna",
        "Kendra",
        "Kimberly",
        "Salli",
        "Joey",
        "Justin",
        "Kevin",
        "Matthew",
        "Ruth",
        "Stephen",
    ],
    "fr-FR": ["Lea", "Remi"],
    "de-DE": ["Vicki", "Daniel"],
    "it-IT": ["Bianca", "Adriano"],
    "ja-JP": ["Takumi", "Kazuha", "Tomoko"],
    "ko-KR": ["Seoyeon"],
    "pt-BR": ["Camila", "Vitoria", "Thiago"],
    "es-ES": ["Lucia", "Sergio"],
    "es-MX": ["Mia", "Andres"],
    "es-US": ["Lupe", "Pedro"],
    "yue-CN": ["Hiujin"],
    "cmn-CN": ["Zhiyu"],
}

LANGUAGE_NAMES: Dict[str, str] = {
    "en-US": "English",
    "fr-FR": "French",
    "de-DE": "German",
    "it-IT": "Italian",
    "ja-JP": "Japanese",
    "ko-KR": "Korean",
    "pt-BR": "Portuguese",
    "es-ES": "Spanish",
    "es-MX": "Spanish",
    "es-US": "Spanish",
    "yue-CN": "Cantonese",
    "cmn-CN": "Mandarin",
}

DEFAULT_HOST_LANG = "en-US"

QUIZ_INTRO_TEMPLATE = "Now it's time for a quiz! Say the following phrases in {language}:"

HOST_SSML_TEMPLATE = "<speak>{text}<break /><break /></speak>"
GUEST_SSML_TEMPLATE = '<speak><prosody rate="x-slow">{text}</prosody><break /></speak>'

RATE_LIMIT_BATCH_SIZE = 8  # Polly calls issued before each pause
RATE_LIMIT_DELAY_SECONDS = 1.0

QUIZ_MAX_PAIRS = 7

SILENCE_FILENAME = "silence.ogg"
SILENCE_DURATION_SECONDS = 1.0
SILENCE_SAMPLE_RATE = 24000  # matches POLLY_PRESETS["SampleRate"]

FFMPEG_BINARY = "ffmpeg"
OUTPUT_CODEC = "libvorbis"
OUTPUT_EXTENSION = ".ogg"
PLAYBACK_TEMPO = 0.7

DEFAULT_SCRATCH_DIR = "sound-temp"
RUN_LOG_FILE = "run_log.json"
REQUEST_LOG_DIR = "request_logs"

# Batch runs over a directory
PODCAST_FILE_EXTENSION = ".json"
BATCH_SKIP_MARKER = "ignore"  # pods with this in their name are drafts
STALE_OUTPUT_EXTENSIONS = (".ogg", ".mp3")

POLLY_PRICING: Dict[str, float] = {
    "standard": 4.00e-6,  # $4.00/1M characters
    "neural": 16.00e-6,  # $16.00/1M characters
    "long-form": 100.00e-6,  # $100.00/1M characters
    "generative": 30.00e-6,  # $30.00/1M characters
}

PODCAST_TEMPLATE = {
    "title": "",
    "lang": "es-US",
    "hostLang": DEFAULT_HOST_LANG,
    "set": [
        ["Hola", "Hello"],
    ],
}
