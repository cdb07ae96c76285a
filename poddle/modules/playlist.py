"""
Playlist assembly for drill podcasts.
Writes synthesized clips to a scratch directory, orders them into the
listen-and-repeat drill and quiz, and stitches them together with ffmpeg.
"""

import os
import random
import shutil
import subprocess
import time
import uuid
from typing import List, Optional, Sequence

from ..config import (
    FFMPEG_BINARY,
    OUTPUT_CODEC,
    OUTPUT_EXTENSION,
    PLAYBACK_TEMPO,
    QUIZ_MAX_PAIRS,
    SILENCE_DURATION_SECONDS,
    SILENCE_FILENAME,
    SILENCE_SAMPLE_RATE,
)
from ..errors import MuxFailed, SilenceClipUnavailable
from ..models.schemas import ClipPair, PlaylistManifest
from ..utils.logging_utils import LoggingManager


def pair_clips(paths: Sequence[str]) -> List[ClipPair]:
    """
    Group phrase clips (title and quiz intro already removed) into
    (learning, fluent) pairs in insertion order.
    """
    if len(paths) % 2 != 0:
        raise ValueError(f"Cannot pair an odd number of clips ({len(paths)})")
    return [
        ClipPair(learning=paths[i], fluent=paths[i + 1])
        for i in range(0, len(paths), 2)
    ]


def select_quiz_pairs(pairs: Sequence[ClipPair], rng: random.Random, limit: int = QUIZ_MAX_PAIRS) -> List[ClipPair]:
    """Uniformly shuffle the pairs and keep at most ``limit`` of them."""
    shuffled = list(pairs)
    rng.shuffle(shuffled)
    return shuffled[:limit]


def build_manifest(
    title: str,
    quiz_intro: str,
    pairs: Sequence[ClipPair],
    silence: str,
    rng: random.Random,
    quiz_max_pairs: int = QUIZ_MAX_PAIRS
) -> PlaylistManifest:
    """
    Lay out the episode.

    Title, then every pair as fluent/learning/learning/fluent/learning/learning,
    then the quiz intro and a shuffled quiz where the listener has two
    silences to answer before hearing the learning phrase.
    """
    entries = [title, silence]
    for pair in pairs:
        entries.extend([
            pair.fluent, pair.learning, pair.learning,
            pair.fluent, pair.learning, pair.learning,
            silence,
        ])
    entries.extend([quiz_intro, silence])
    for pair in select_quiz_pairs(pairs, rng, quiz_max_pairs):
        entries.extend([pair.fluent, silence, silence, pair.learning, silence])
    return PlaylistManifest(entries=entries)


class PlaylistAssembler:
    """Owns the scratch directory and the ffmpeg invocation for one run."""

    def __init__(
        self,
        scratch_dir: str,
        output_dir: str,
        logger: LoggingManager,
        ffmpeg_binary: str = FFMPEG_BINARY,
        silence_source: Optional[str] = None,
        rng: Optional[random.Random] = None,
        tempo: float = PLAYBACK_TEMPO
    ):
        self.scratch_dir = scratch_dir
        self.output_dir = output_dir
        self.logger = logger
        self.ffmpeg_binary = ffmpeg_binary
        self.silence_source = silence_source
        self.rng = rng or random.Random()
        self.tempo = tempo
        self._silence_audio: Optional[bytes] = None

    @property
    def silence_path(self) -> str:
        return os.path.join(self.scratch_dir, SILENCE_FILENAME)

    def load_silence_source(self) -> bytes:
        """Read the user's silence clip into memory."""
        if self._silence_audio is None:
            try:
                with open(self.silence_source, 'rb') as f:
                    self._silence_audio = f.read()
            except OSError as e:
                raise SilenceClipUnavailable(self.silence_source, e.strerror or str(e)) from e
        return self._silence_audio

    def prepare_scratch_dir(self) -> None:
        """Create the scratch directory and empty it of files and sub-directories."""
        # The silence clip may itself live in the scratch directory.
        if self.silence_source:
            self.load_silence_source()

        os.makedirs(self.scratch_dir, exist_ok=True)
        for name in os.listdir(self.scratch_dir):
            path = os.path.join(self.scratch_dir, name)
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            else:
                os.remove(path)

    def _run(self, cmd: List[str]) -> subprocess.CompletedProcess:
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise MuxFailed(cmd, None, str(e)) from e
        if result.returncode != 0:
            raise MuxFailed(cmd, result.returncode, result.stderr)
        return result

    def ensure_silence_clip(self) -> str:
        """Place the shared silence clip in the scratch directory."""
        if self.silence_source:
            audio = self.load_silence_source()
            with open(self.silence_path, 'wb') as f:
                f.write(audio)
            return self.silence_path

        self._run([
            self.ffmpeg_binary, '-y', '-hide_banner', '-loglevel', 'error',
            '-f', 'lavfi',
            '-i', f'anullsrc=r={SILENCE_SAMPLE_RATE}:cl=mono',
            '-t', str(SILENCE_DURATION_SECONDS),
            '-c:a', OUTPUT_CODEC,
            self.silence_path
        ])
        return self.silence_path

    def write_clips(self, clips: Sequence[bytes]) -> List[str]:
        """Write each clip to a uniquely named file, keeping input order."""
        paths = []
        for clip in clips:
            path = os.path.join(self.scratch_dir, f"{uuid.uuid4()}{OUTPUT_EXTENSION}")
            with open(path, 'wb') as f:
                f.write(clip)
            paths.append(path)
        return paths

    def write_manifest(self, manifest: PlaylistManifest) -> str:
        """Write the concat script. Entries are basenames, so every clip must sit beside it."""
        for entry in manifest.entries:
            if os.path.dirname(os.path.abspath(entry)) != os.path.abspath(self.scratch_dir):
                raise ValueError(f"Clip {entry} is outside the scratch directory {self.scratch_dir}")

        manifest_path = os.path.join(self.scratch_dir, f"{uuid.uuid4()}.txt")
        with open(manifest_path, 'w', encoding='utf-8') as f:
            f.write(manifest.to_concat_script())
        return manifest_path

    def output_path_for(self, source_file: str) -> str:
        stem = os.path.splitext(os.path.basename(source_file))[0]
        return os.path.join(self.output_dir, f"{stem}{OUTPUT_EXTENSION}")

    def build_mux_command(self, manifest_path: str, output_path: str) -> List[str]:
        return [
            self.ffmpeg_binary, '-y', '-hide_banner', '-loglevel', 'error',
            '-f', 'concat',
            '-safe', '0',
            '-i', manifest_path,
            '-c:a', OUTPUT_CODEC,
            '-filter:a', f'atempo={self.tempo}',
            output_path
        ]

    def mux(self, manifest_path: str, output_path: str) -> str:
        """Concatenate the manifest into a single slowed-down Vorbis file."""
        os.makedirs(self.output_dir, exist_ok=True)
        start_time = time.time()
        self._run(self.build_mux_command(manifest_path, output_path))
        self.logger.log_stage_metrics("mux", execution_time=time.time() - start_time)
        return output_path

    def assemble(self, clips: Sequence[bytes], source_file: str) -> str:
        """
        Turn synthesized clips into the finished episode.

        Args:
            clips: Audio buffers in phrase order (title, quiz intro, then pairs)
            source_file: Podcast JSON path, used to name the output

        Returns:
            Path to the assembled podcast
        """
        if len(clips) < 2:
            raise ValueError("Expected at least a title clip and a quiz intro clip")

        start_time = time.time()
        clip_paths = self.write_clips(clips)
        self.logger.log_stage_metrics("write_clips", execution_time=time.time() - start_time)

        title_path, quiz_path = clip_paths[0], clip_paths[1]
        pairs = pair_clips(clip_paths[2:])

        manifest = build_manifest(title_path, quiz_path, pairs, self.silence_path, self.rng)
        manifest_path = self.write_manifest(manifest)
        self.logger.log_step(
            f"Playlist: {len(pairs)} drill pairs, {min(len(pairs), QUIZ_MAX_PAIRS)} quiz pairs"
        )

        output_path = self.output_path_for(source_file)
        self.logger.log_step(f"Stitching {len(manifest.entries)} clips with {self.ffmpeg_binary}...")
        return self.mux(manifest_path, output_path)
