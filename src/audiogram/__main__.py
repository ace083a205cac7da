#!/usr/bin/env python3
"""
Audiogram CLI Tool
==================

Builds short "audiograms": a speaker portrait, a bass-reactive waveform and
captions synchronised to the audio. The same engine drives a live preview
window and a frame-exact video export.

Usage:
    python -m audiogram render input.wav --portrait speaker.png -o result.mp4
    python -m audiogram preview input.wav --captions captions.json
    python -m audiogram -h (for help)
"""

import argparse
import asyncio
import logging
import os
import sys
import time

import cv2
from moviepy import AudioFileClip, VideoClip

from audiogram.captions import DEFAULT_CAPTIONS, captions_from_transcript, load_captions
from audiogram.config import EngineConfig
from audiogram.constants import DEFAULT_FPS, DEFAULT_RESOLUTION, REFRESH_RATE
from audiogram.errors import AudiogramError
from audiogram.scheduler import FrameClock, LiveScheduler, interval_refresh
from audiogram.signal_source import FileSignalSource
from audiogram.state import Session
from audiogram.visualiser_renderer import AudiogramRenderer

logger = logging.getLogger("audiogram")

WINDOW_NAME = "Audiogram preview"


def build_parser():
    parser = argparse.ArgumentParser(
        prog="audiogram",
        description="Preview or export an audiogram video from an audio file.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("input", help="Path to input audio file (WAV/MP3)")
    common.add_argument("--portrait", help="Speaker portrait image")
    captions = common.add_mutually_exclusive_group()
    captions.add_argument("--captions", help="JSON file of {start, end, text} captions")
    captions.add_argument("--transcript", help="Plain text shown for the whole clip")
    common.add_argument("--name", default="Dr Carol Leone", help="Speaker name")
    common.add_argument("--title", default="SMU Meadows School of the Arts in Dallas, Texas", help="Speaker title")
    common.add_argument("--role", default="Chair of Piano Studies", help="Speaker role")
    common.add_argument("--width", type=int, default=DEFAULT_RESOLUTION[0], help="Video width")
    common.add_argument("--height", type=int, default=DEFAULT_RESOLUTION[1], help="Video height")
    common.add_argument("--seed", type=int, default=0, help="Seed for synthetic data and particles")
    common.add_argument("--style", choices=("bars", "liquid"), default="bars", help="Waveform style")

    render = subparsers.add_parser("render", parents=[common], help="Export a video file")
    render.add_argument("--output", "-o", default="audiogram.mp4", help="Path to output video file")
    render.add_argument("--fps", type=int, default=DEFAULT_FPS, help="Frames per second")
    render.add_argument("--duration", type=float, help="Limit duration in seconds (optional)")

    preview = subparsers.add_parser("preview", parents=[common], help="Play a live preview window")
    preview.add_argument("--fps", type=int, default=REFRESH_RATE, help="Preview refresh rate")

    return parser


def resolve_captions(args, duration):
    if args.captions:
        return load_captions(args.captions)
    if args.transcript:
        return captions_from_transcript(args.transcript, duration)
    return DEFAULT_CAPTIONS


def render(args, config):
    clock = FrameClock()
    source = FileSignalSource(args.input, clock=clock)
    source.load()

    duration = source.duration
    if args.duration and args.duration < duration:
        duration = args.duration
        logger.info(f"[i] Truncating duration to {duration} seconds.")

    session = Session(source, resolve_captions(args, duration), config, portrait=args.portrait)
    renderer = AudiogramRenderer(session, clock, speaker=(args.name, args.title, args.role), style=args.style)

    logger.info(f"[+] Preparing render: {config.width}x{config.height} @ {config.fps}fps")
    logger.info(f"[+] Duration: {duration:.2f} seconds")

    # MoviePy expects RGB frames, the renderer draws BGR
    def make_frame_wrapper(t):
        frame = renderer.make_frame(t)
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    video_clip = VideoClip(make_frame_wrapper, duration=duration)

    # Attach original audio, cut to the rendered duration
    audio_clip = AudioFileClip(args.input).subclipped(0, duration)
    video_clip = video_clip.with_audio(audio_clip)

    logger.info("[+] Rendering video... (This may take a while)")
    video_clip.write_videofile(
        args.output,
        fps=config.fps,
        codec="libx264",
        audio_codec="aac",
        threads=4,
        preset="medium",
        logger="bar",
    )
    logger.info(f"[+] Done! Saved to {args.output}")


async def preview(args, config):
    source = FileSignalSource(args.input)
    source.load()
    session = Session(source, resolve_captions(args, source.duration), config, portrait=args.portrait)
    renderer = AudiogramRenderer(session, speaker=(args.name, args.title, args.role), style=args.style)
    scheduler = LiveScheduler(session, on_frame=None, refresh=interval_refresh(args.fps))

    def show(frame):
        cv2.imshow(WINDOW_NAME, renderer.render(frame))
        key = cv2.waitKey(1) & 0xFF
        if key in (ord("q"), 27):
            scheduler.token.cancel()
        elif key == ord(" "):
            if session.is_playing:
                session.pause(time.monotonic())
            else:
                session.play(time.monotonic())

    scheduler.on_frame = show
    logger.info("[+] Previewing: space to play/pause, q to quit")
    session.play(time.monotonic())
    task = scheduler.start()
    try:
        await scheduler.token.wait()
        # Surface any error raised inside the loop
        if task.done():
            task.result()
    finally:
        await scheduler.stop()
        session.stop()
        cv2.destroyAllWindows()


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    # 1. Validation
    if not os.path.exists(args.input):
        sys.exit(f"[!] Input file not found: {args.input}")
    if args.portrait and not os.path.exists(args.portrait):
        sys.exit(f"[!] Portrait not found: {args.portrait}")
    if getattr(args, "duration", None) is not None and args.duration <= 0:
        sys.exit(f"[!] Duration must be positive, got {args.duration}")

    config = EngineConfig.from_args(args)
    try:
        if args.command == "render":
            render(args, config)
        else:
            asyncio.run(preview(args, config))
    except AudiogramError as e:
        sys.exit(f"[!] {e}")


if __name__ == "__main__":
    main()
