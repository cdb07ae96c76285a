#!/usr/bin/env python3
"""
Generate language-learning podcasts from JSON phrase files.
Simple entry point that doesn't require PYTHONPATH.
"""

import argparse
import os
import shlex
import subprocess
import sys

project_root = os.path.dirname(os.path.abspath(__file__))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from botocore.exceptions import BotoCoreError, ClientError

from poddle.config import DEFAULT_SCRATCH_DIR, FFMPEG_BINARY
from poddle.errors import PoddleError
from poddle.modules.voices import InteractiveVoiceResolver, StaticVoiceResolver
from poddle.pipeline import PodcastPipeline, scaffold_podcast

__version__ = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="poddle", description="Generate language podcasts")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create podcasts from JSON files")
    create.add_argument("files", nargs="+", metavar="file",
                        help="JSON file of podcast, or a directory of them (names containing 'ignore' are skipped)")
    create.add_argument("--host-voice", help="Speaker for the host language")
    create.add_argument("--guest-voice", help="Speaker for the language being learned")
    create.add_argument("--choose-voices", action="store_true",
                        help="Prompt for any speaker not given on the command line")
    create.add_argument("--scratch-dir", default=DEFAULT_SCRATCH_DIR,
                        help="Directory for intermediate clips (emptied on every run)")
    create.add_argument("--output-dir", default=".", help="Directory for the finished podcasts")
    create.add_argument("--clean", action="store_true",
                        help="Delete .ogg and .mp3 files in the output directory before rendering")
    create.add_argument("--silence", help="Silence clip to use between phrases")
    create.add_argument("--region", help="AWS region for Polly")
    create.add_argument("--ffmpeg", default=FFMPEG_BINARY, help="ffmpeg executable")
    create.add_argument("--debug", action="store_true",
                        help="Save every synthesis request next to the scratch clips")

    new = subparsers.add_parser("new", help="Create a new podcast file from a template")
    new.add_argument("name", help="Name of the podcast file")
    new.add_argument("--directory", default=".", help="Where to write the file")
    new.add_argument("--no-edit", action="store_true", help="Don't open the file in an editor")

    return parser


def open_in_editor(path: str) -> bool:
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR")
    if not editor:
        return False
    subprocess.run(shlex.split(editor) + [path], check=False)
    return True


def run_create(args) -> int:
    resolver = InteractiveVoiceResolver() if args.choose_voices else StaticVoiceResolver()
    pipeline = PodcastPipeline(region_name=args.region, voice_resolver=resolver)

    output_paths = pipeline.create_podcasts(
        args.files,
        output_dir=args.output_dir,
        clean_outputs=args.clean,
        host_voice=args.host_voice,
        guest_voice=args.guest_voice,
        scratch_dir=args.scratch_dir,
        silence_source=args.silence,
        ffmpeg_binary=args.ffmpeg,
        debug=args.debug
    )
    for output_path in output_paths:
        print(f'Podcast saved to "{os.path.abspath(output_path)}"')
    return 0


def run_new(args) -> int:
    path = scaffold_podcast(args.name, args.directory)
    print(f"Created {path}")
    if not args.no_edit and not open_in_editor(path):
        print("Set $EDITOR to open new podcasts automatically.")
    return 0


def main(argv=None) -> int:
    """Main entry point for the poddle CLI."""
    args = build_parser().parse_args(argv)

    try:
        if args.command == "create":
            return run_create(args)
        return run_new(args)
    except (PoddleError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (BotoCoreError, ClientError) as e:
        print(f"Polly request failed: {e}", file=sys.stderr)
        return 1
    except EOFError:
        print("Error: input closed before a voice was chosen", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
