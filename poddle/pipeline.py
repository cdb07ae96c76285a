"""
Main pipeline orchestration for language podcast generation.
Loads a podcast file, synthesizes every phrase with Polly and stitches the drill together.
"""

import json
import os
import time
from typing import List, Optional, Sequence
import uuid

import boto3
from pydantic import ValidationError

from .config import (
    BATCH_SKIP_MARKER,
    DEFAULT_SCRATCH_DIR,
    FFMPEG_BINARY,
    PODCAST_FILE_EXTENSION,
    PODCAST_TEMPLATE,
    STALE_OUTPUT_EXTENSIONS,
)
from .errors import InvalidPodcastSpec
from .models.schemas import PodcastSpec
from .modules.playlist import PlaylistAssembler
from .modules.speech_requests import SpeechRequestBuilder
from .modules.voices import StaticVoiceResolver
from .utils.logging_utils import LoggingManager
from .utils.request_logger import RequestLogger


def load_podcast_spec(path: str) -> PodcastSpec:
    """Read and validate a podcast JSON file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = f.read()
    except OSError as e:
        raise InvalidPodcastSpec(path, str(e)) from e

    try:
        return PodcastSpec.model_validate_json(raw)
    except ValidationError as e:
        raise InvalidPodcastSpec(path, str(e)) from e


def scaffold_podcast(name: str, directory: str = ".") -> str:
    """
    Write a template podcast file named after ``name``.

    Returns:
        Path to the new file
    """
    filename = name if name.endswith(".json") else f"{name}.json"
    path = os.path.join(directory, filename)
    if os.path.exists(path):
        raise FileExistsError(f"{path} already exists")

    template = dict(PODCAST_TEMPLATE)
    template["title"] = os.path.splitext(os.path.basename(filename))[0].replace("-", " ").replace("_", " ").strip().title()

    os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(template, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path


def collect_podcast_files(paths: Sequence[str]) -> List[str]:
    """
    Expand the command-line paths into podcast files.

    Directories contribute their ``*.json`` files in name order, skipping any
    whose name contains the draft marker. Plain files are kept as given.
    """
    files = []
    for path in paths:
        if not os.path.isdir(path):
            files.append(path)
            continue
        for name in sorted(os.listdir(path)):
            if name.endswith(PODCAST_FILE_EXTENSION) and BATCH_SKIP_MARKER not in name:
                files.append(os.path.join(path, name))
    return files


def remove_stale_outputs(output_dir: str) -> List[str]:
    """Delete previously rendered podcasts from the output directory."""
    removed = []
    if not os.path.isdir(output_dir):
        return removed
    for name in sorted(os.listdir(output_dir)):
        path = os.path.join(output_dir, name)
        if name.endswith(STALE_OUTPUT_EXTENSIONS) and os.path.isfile(path):
            os.remove(path)
            removed.append(path)
    return removed


def _is_within(path: str, directory: str) -> bool:
    path, directory = os.path.abspath(path), os.path.abspath(directory)
    return os.path.commonpath([path, directory]) == directory


class PodcastPipeline:
    """Main pipeline for converting a podcast file to drill audio."""

    def __init__(self, polly_client=None, region_name: str = None, voice_resolver=None, quiet: bool = False):
        """
        Initialize the pipeline.

        Args:
            polly_client: Polly client (if None, one is created from the ambient AWS configuration)
            region_name: AWS region for the created client
            voice_resolver: Resolver used when no voice is forced (defaults to the first listed voice)
            quiet: Suppress progress output
        """
        self._polly_client = polly_client
        self.region_name = region_name
        self.voice_resolver = voice_resolver or StaticVoiceResolver()
        self.quiet = quiet
        self.logger: Optional[LoggingManager] = None
        self.request_logger: Optional[RequestLogger] = None

    @property
    def polly_client(self):
        if self._polly_client is None:
            self._polly_client = boto3.client("polly", region_name=self.region_name)
        return self._polly_client

    def create_podcast(
        self,
        podcast_path: str,
        host_voice: str = None,
        guest_voice: str = None,
        scratch_dir: str = DEFAULT_SCRATCH_DIR,
        output_dir: str = ".",
        silence_source: str = None,
        ffmpeg_binary: str = FFMPEG_BINARY,
        debug: bool = False,
        rng=None
    ) -> str:
        """
        Run the complete pipeline from podcast file to audio.

        Args:
            podcast_path: Path to the podcast JSON file
            host_voice: Speaker override for the host language
            guest_voice: Speaker override for the learning language
            scratch_dir: Directory for intermediate clips, emptied at start
            output_dir: Directory for the finished podcast
            silence_source: Optional pre-made silence clip
            ffmpeg_binary: ffmpeg executable
            debug: Write every synthesis request to the scratch directory
            rng: Random source for the quiz order

        Returns:
            Path to the assembled podcast
        """
        self.logger = LoggingManager(str(uuid.uuid4()), os.path.basename(podcast_path), quiet=self.quiet)

        spec = load_podcast_spec(podcast_path)
        self.logger.title = spec.title
        if _is_within(podcast_path, scratch_dir):
            raise InvalidPodcastSpec(podcast_path, f"it lives in the scratch directory {scratch_dir}, which is emptied on every run")

        # Voices are settled before anything touches the network or the scratch directory.
        resolved_host = self.voice_resolver.resolve(spec.host_lang, host_voice)
        resolved_guest = self.voice_resolver.resolve(spec.lang, guest_voice)

        assembler = PlaylistAssembler(
            scratch_dir,
            output_dir,
            self.logger,
            ffmpeg_binary=ffmpeg_binary,
            silence_source=silence_source,
            rng=rng
        )

        try:
            self.logger.log_info(f'Generating audio for "{spec.title}"...')
            self.logger.log_step(f"Host: {resolved_host} ({spec.host_lang}), guest: {resolved_guest} ({spec.lang})")

            start_time = time.time()
            assembler.prepare_scratch_dir()
            assembler.ensure_silence_clip()
            self.logger.log_stage_metrics("prepare_scratch", execution_time=time.time() - start_time)

            self.request_logger = RequestLogger(scratch_dir) if debug else None

            builder = SpeechRequestBuilder(
                self.polly_client,
                self.logger,
                resolved_host,
                resolved_guest,
                request_logger=self.request_logger
            )
            clips = builder.synthesize_podcast(spec)

            output_path = assembler.assemble(clips, podcast_path)
            self.logger.output_path = output_path

            log_path = self.logger.save_run_log(scratch_dir)
            self.logger.print_summary()
            self.logger.log_step(f"Run log: {log_path}")
            if self.request_logger:
                self.logger.log_step(self.request_logger.get_logs_summary())

            return output_path

        except Exception as e:
            if os.path.isdir(scratch_dir):
                self.logger.save_run_log(scratch_dir, status="failed", error_message=str(e))
                self.logger.log_warning(f"Scratch files kept in {scratch_dir}")
            raise

    def create_podcasts(
        self,
        paths: Sequence[str],
        output_dir: str = ".",
        clean_outputs: bool = False,
        **kwargs
    ) -> List[str]:
        """
        Render several podcasts one after another.

        Args:
            paths: Podcast files and/or directories of podcast files
            output_dir: Directory for the finished podcasts
            clean_outputs: Delete rendered .ogg/.mp3 files in output_dir first
            **kwargs: Passed through to create_podcast

        Returns:
            Output paths in the order the podcasts were rendered
        """
        podcast_files = collect_podcast_files(paths)
        if not podcast_files:
            raise InvalidPodcastSpec(", ".join(paths), "no podcast files found")

        if clean_outputs:
            for path in remove_stale_outputs(output_dir):
                if not self.quiet:
                    print(f"Removed {path}")

        # The scratch directory is shared, so runs stay sequential.
        return [
            self.create_podcast(podcast_file, output_dir=output_dir, **kwargs)
            for podcast_file in podcast_files
        ]
