# file: chord_detector.py
import argparse
import logging
import sys
import time

from chord_listener.common import BUFFER_SIZE, HOP_SIZE, RATE, BLOCK_SIZE
from chord_listener.config import DetectorConfig
from chord_listener.errors import AcquisitionError
from chord_listener.output import ConsoleOutputHandler
from chord_listener.pipeline import DetectionPipeline


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Live chroma chord detector')

    # --- Device / timing ---
    parser.add_argument('--list-devices', action='store_true', help='List available audio input devices and exit')
    parser.add_argument('--device', type=int, help='Audio input device ID (use --list-devices to see available devices)')
    parser.add_argument('--sample-rate', type=int, default=RATE, help=f'Sample rate in Hz (default: {RATE})')
    parser.add_argument('--block-size', type=int, default=BLOCK_SIZE,
                        help=f'Samples per captured chunk (default: {BLOCK_SIZE})')
    parser.add_argument('--duration', type=float, default=0.0,
                        help='Stop after this many seconds (0 = until Ctrl+C, default: 0)')

    # --- Output modes ---
    parser.add_argument('--log', action='store_true', help='Enable logging mode with timestamps')
    parser.add_argument('--show-chroma', action='store_true', help='Show chroma vector alongside chords')
    parser.add_argument('--debug', action='store_true', help='Show pipeline diagnostics on stderr')

    return parser.parse_args(argv)


def configure_logging(debug):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr,
    )


def print_devices():
    from chord_listener.sound_capture import list_input_devices
    print("Available audio input devices:")
    for device_id, name, channels, is_default in list_input_devices():
        default_marker = " (DEFAULT)" if is_default else ""
        print(f"  [{device_id}] {name} - {channels} channel(s){default_marker}")


def print_config(config):
    print("📊 Configuration:")
    print(f"  Sample Rate: {config.sample_rate} Hz")
    print(f"  Frame Size: {config.buffer_size} samples (hop size: {config.hop_size}, unused)")
    print(f"  Smoothing Window: {config.smoothing_interval:.0f} ms")
    print(f"  Loudness Floor: {config.loudness_floor}")
    print(f"  Note Threshold: {config.note_threshold}")
    if config.device is not None:
        print(f"  Device: {config.device}")
    if config.log:
        print("  Log: True")
    if config.show_chroma:
        print("  Show Chroma: True")


def main(argv=None):
    """
    Run the chord detector on the microphone until Ctrl+C or --duration.
    """
    args = parse_args(argv)
    configure_logging(args.debug)

    if args.list_devices:
        print_devices()
        return 0

    config = DetectorConfig({
        'buffer_size': BUFFER_SIZE,
        'hop_size': HOP_SIZE,
        'sample_rate': args.sample_rate,
        'block_size': args.block_size,
        'device': args.device,
        'log': args.log,
        'show_chroma': args.show_chroma,
        'debug': args.debug,
    })
    print_config(config)

    from chord_listener.sound_capture import SoundDeviceProducer
    producer = SoundDeviceProducer(
        sample_rate=config.sample_rate,
        block_size=config.block_size,
        device=config.device,
    )
    pipeline = DetectionPipeline(producer, config, output_handler=ConsoleOutputHandler(config))

    try:
        pipeline.start()
    except AcquisitionError as e:
        print(f"❌ Could not start listening: {e.reason}", file=sys.stderr)
        print("Common reasons for errors:", file=sys.stderr)
        print("1. Microphone not detected or properly configured.", file=sys.stderr)
        print("2. Insufficient permissions (check your OS privacy settings for microphone access).", file=sys.stderr)
        print("3. Another application is already using the microphone.", file=sys.stderr)
        return 1

    started = time.monotonic()
    try:
        while args.duration <= 0 or time.monotonic() - started < args.duration:
            time.sleep(0.1)
    except KeyboardInterrupt:
        print("\n🛑 Stopping chord detector.")
    finally:
        pipeline.stop()
    return 0


if __name__ == '__main__':
    sys.exit(main())
