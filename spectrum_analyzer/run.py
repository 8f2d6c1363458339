"""Entry point to run the streaming spectrum analyzer in a terminal."""

import argparse
import logging
import sys
import threading
from typing import Callable, List, Optional, Sequence, TextIO

import numpy as np

from . import config
from .analyzer import SpectrumAnalyzer
from .display import PeakPrinter, SpectrumDisplay
from .dsp import frequency_table
from .errors import AnalyzerError
from .transport import FrameTransport

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    """Command line options; defaults come from ``config``."""
    parser = argparse.ArgumentParser(
        description=(
            "Stream audio from an input device and print the dominant frequency "
            "or an ASCII magnitude spectrum. Press Enter to quit."
        )
    )
    parser.add_argument(
        "--mode",
        choices=config.OUTPUT_MODES,
        default=config.OUTPUT_MODE,
        help="'peak' prints one dominant-frequency line per window, "
        "'spectrum' redraws a bar chart.",
    )
    parser.add_argument(
        "--buffer-size",
        type=int,
        default=config.BUFFER_SIZE,
        help="Samples per segment; also the driver buffer size in frames.",
    )
    parser.add_argument(
        "--num-buffers",
        type=int,
        default=config.NUM_BUFFERS,
        help="Segments per transform window.",
    )
    parser.add_argument(
        "--short-chunks",
        choices=config.SHORT_CHUNK_POLICIES,
        default=config.SHORT_CHUNK_POLICY,
        help="What to do with chunks shorter than a segment.",
    )
    parser.add_argument(
        "--queue-size",
        type=int,
        default=config.QUEUE_MAXSIZE,
        help="Frames buffered between audio thread and analysis (0 = unbounded).",
    )
    parser.add_argument(
        "--overflow",
        choices=config.OVERFLOW_POLICIES,
        default=config.OVERFLOW_POLICY,
        help="Which frame to drop when the queue is full.",
    )
    parser.add_argument("--width", type=int, help="Fixed chart width in columns.")
    parser.add_argument("--height", type=int, help="Fixed chart height in rows.")
    parser.add_argument(
        "--scale",
        type=float,
        default=config.VERTICAL_SCALE,
        help="Summed magnitude represented by one chart row.",
    )
    parser.add_argument(
        "--max-hz",
        type=float,
        default=config.MAX_DISPLAY_HZ,
        help="Only chart bins up to this frequency.",
    )
    parser.add_argument("--device-index", type=int, help="Input device index.")
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="Print the available input devices and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (logs go to stderr).",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> config.AnalyzerSettings:
    """Translate parsed CLI options into ``AnalyzerSettings``."""
    if args.width is not None and args.height is not None:
        render_mode = config.RenderMode.fixed(args.width, args.height)
    elif args.width is not None or args.height is not None:
        raise ValueError("--width and --height must be given together")
    else:
        render_mode = config.RenderMode.from_terminal()
    return config.AnalyzerSettings(
        buffer_size=args.buffer_size,
        num_buffers=args.num_buffers,
        short_chunk_policy=args.short_chunks,
        queue_maxsize=args.queue_size,
        overflow_policy=args.overflow,
        output_mode=args.mode,
        render_mode=render_mode,
        vertical_scale=args.scale,
        max_display_hz=args.max_hz,
    )


def make_output(
    settings: config.AnalyzerSettings,
    frequencies: np.ndarray,
    stream: Optional[TextIO] = None,
) -> Callable[[np.ndarray], None]:
    """Build the per-rotation output callback selected by ``output_mode``."""
    if settings.output_mode == "spectrum":
        return SpectrumDisplay(
            frequencies,
            render_mode=settings.render_mode,
            scale=settings.vertical_scale,
            max_hz=settings.max_display_hz,
            stream=stream,
        )
    return PeakPrinter(frequencies, stream=stream)


def print_devices(devices: List[dict], stream: Optional[TextIO] = None) -> None:
    """Print a tab-separated table of input devices."""
    stream = stream if stream is not None else sys.stdout
    print("dev. index\tmaxInputCh.\tdefaultRate\tdev. name", file=stream)
    for dev in devices:
        print(
            f"{dev['index']}\t{int(dev['maxInputChannels'])}\t"
            f"{int(dev['defaultSampleRate'])}\t{dev['name']}",
            file=stream,
        )


def wait_for_stdin(ais, poll_interval: float = 1.0) -> None:
    """Block until a line (or EOF) arrives on stdin, reporting stream health.

    Status flags raised in the audio callback are logged here, on the main
    thread, and a warning is emitted once if the stream stops delivering.
    """
    done = threading.Event()

    def _read() -> None:
        sys.stdin.readline()
        done.set()

    threading.Thread(target=_read, name="StdinWaiter", daemon=True).start()
    stalled = False
    while not done.wait(poll_interval):
        ais.log_status()
        if not stalled and not ais.is_active():
            logger.warning("Input stream stopped delivering audio")
            stalled = True
    ais.log_status()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start capture and the analysis worker, then wait for a line on stdin."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        settings = settings_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))

    # PortAudio is only needed once we actually talk to a device.
    from .audio_stream import AudioInputStream

    try:
        if args.list_devices:
            print_devices(AudioInputStream.list_input_devices())
            return 0

        transport = FrameTransport(settings.queue_maxsize, settings.overflow_policy)
        ais = AudioInputStream(
            transport.send,
            CHUNK=settings.buffer_size,
            input_device_index=args.device_index,
        )
    except AnalyzerError as exc:
        logger.error("Setup failed: %s", exc)
        return 1

    with ais:
        frequencies = frequency_table(ais.RATE, settings.total_length)
        analyzer = SpectrumAnalyzer(
            settings,
            ais.RATE,
            ais.CHANNELS,
            make_output(settings, frequencies),
            frequencies=frequencies,
        )
        analyzer.start(transport)

        wait_for_stdin(ais)

    transport.close()
    analyzer.join(timeout=1.0)
    logger.info(
        "Session ended: %d frames received, %d dropped, %d windows analyzed",
        transport.sent,
        transport.dropped,
        analyzer.accumulator.rotations,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
