import argparse
import time

from synesthete.config import TARGET_FPS, UDP_PORT_COMMANDS, UDP_PORT_ENGINE, AnalysisConfig, ColorSystem, InputMode
from synesthete.logging_utils import log_event, set_log_level

from .analyzer import AnalysisEngine
from .command_listener import CommandListener
from .debug_monitor import DebugMonitor
from .playback import FileSpectrumSource
from .transmitter import NetworkTransmitter


def open_source(args, mode: InputMode):
    """File playback when a path was given, live capture otherwise."""
    if args.file and mode == InputMode.MUSIC:
        return FileSpectrumSource.from_file(args.file, loop=args.loop)
    # Imported lazily: pyaudio is only needed for live capture
    from .stream import LiveSpectrumSource

    return LiveSpectrumSource()


def apply_commands(engine, listener, monitor, source, args):
    """Apply queued control updates between ticks. Returns the (possibly new) source."""
    for key, value in listener.drain():
        previous_mode = engine.config.input_mode
        if engine.update_parameter(key, value):
            monitor.log_command(key, value)
        if engine.config.input_mode != previous_mode:
            # The input device changes with the mode: swap source and resize buffers together
            try:
                new_source = open_source(args, engine.config.input_mode)
            except (OSError, ImportError, RuntimeError) as e:
                log_event("ERROR", "Engine", "Could not open input, keeping current source", error=e)
                engine.set_input_mode(previous_mode)
                continue
            source.close()
            source = new_source
            engine.configure(source.sample_rate, source.buffer_size)
    return source


def run_engine(args):
    config = AnalysisConfig(
        energy_threshold=args.energy_threshold,
        input_mode=InputMode(args.mode),
        color_system=ColorSystem(args.color_system),
    )
    source = open_source(args, config.input_mode)
    engine = AnalysisEngine(config, source.sample_rate, source.buffer_size)
    transmitter = NetworkTransmitter()
    monitor = DebugMonitor(summary_interval=2.0, enable_event_logging=args.events)

    # Start listening for control changes (mode switches, tuning)
    command_listener = CommandListener()

    log_event(
        "INFO",
        "Engine",
        f"Analyzer Active. Listening for commands on {UDP_PORT_COMMANDS}, Sending data on {UDP_PORT_ENGINE}.",
        mode=config.input_mode.value,
    )

    frame_period = 1.0 / TARGET_FPS
    try:
        while True:
            source = apply_commands(engine, command_listener, monitor, source, args)
            frame = source.read()

            t_start = time.time()
            snapshot = engine.tick(frame.spectrum, frame.rms)
            frame_time_ms = (time.time() - t_start) * 1000.0

            monitor.update(frame_time_ms, snapshot)
            transmitter.send(snapshot)

            if isinstance(source, FileSpectrumSource):
                if source.finished and not args.hold:
                    log_event("INFO", "Engine", "End of file")
                    break
                # file playback is paced here, live capture by the device
                time.sleep(max(0.0, frame_period - (time.time() - t_start)))
    except KeyboardInterrupt:
        log_event("INFO", "Engine", "Shutting down engine...")
    finally:
        source.close()
        transmitter.close()
        command_listener.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="synesthete", description="Real-time audio analysis engine")
    parser.add_argument("--file", help="Audio file to analyse (live capture when omitted)")
    parser.add_argument("--loop", action="store_true", help="Loop file playback")
    parser.add_argument("--hold", action="store_true", help="Keep publishing silence after the file ends")
    parser.add_argument(
        "--energy-threshold",
        type=float,
        required=True,
        help="High-energy threshold, tune to the source loudness (e.g. 180-1200)",
    )
    parser.add_argument("--mode", choices=[m.value for m in InputMode], default=InputMode.MUSIC.value)
    parser.add_argument(
        "--color-system", choices=[c.value for c in ColorSystem], default=ColorSystem.SCRIABIN.value
    )
    parser.add_argument("--events", action="store_true", help="Log every beat / chord change")
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    set_log_level(args.log_level)
    if args.events:
        # per-event lines are DEBUG records from the monitor only
        set_log_level("DEBUG", component="Monitor")
    run_engine(args)


if __name__ == "__main__":
    main()
