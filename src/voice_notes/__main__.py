import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from voice_notes.config import VoiceNotesConfig
from voice_notes.domain.controller import EXIT_FAULT, MissingCredentialsError, SessionController
from voice_notes.log_format import setup_logging

ENV_FILE_PATH = Path.home() / ".config" / "voice-notes" / "env"

logger = logging.getLogger("voice_notes")


def _load_env_file(path: Path = ENV_FILE_PATH) -> None:
    if not path.exists():
        return
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip().removeprefix("export ").strip()
            value = value.strip().strip("'\"")
            if key not in os.environ:
                os.environ[key] = value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Voice-to-notes assistant")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command")

    record_parser = subparsers.add_parser("record", help="Record a session and generate notes (default)")
    record_parser.add_argument("--output-dir", help="Directory for notes and audio artifacts")
    record_parser.add_argument("--skip-checks", action="store_true", help="Skip startup health checks")

    serve_parser = subparsers.add_parser("serve", help="Run the notes HTTP API")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Bind port")
    serve_parser.add_argument("--db", help="Path of the JSON database file")

    subparsers.add_parser("check", help="Run startup health checks and exit")

    return parser


def main(argv: list[str] | None = None) -> None:
    _load_env_file()
    args = build_parser().parse_args(argv)

    config = VoiceNotesConfig()
    setup_logging(verbose=args.verbose, log_file=config.log_file)

    if args.command == "serve":
        _serve(args, config)
    elif args.command == "check":
        sys.exit(_check(config))
    else:
        if getattr(args, "output_dir", None):
            config.output_dir = args.output_dir
        sys.exit(asyncio.run(_run_session(config, skip_checks=getattr(args, "skip_checks", False))))


def _check(config: VoiceNotesConfig) -> int:
    from voice_notes.health import has_critical_failures, run_startup_checks

    results = run_startup_checks(config)
    return EXIT_FAULT if has_critical_failures(results) else 0


def _serve(args: argparse.Namespace, config: VoiceNotesConfig) -> None:
    import uvicorn

    from voice_notes.factory import create_server

    if args.db:
        config.db_path = args.db
    host = args.host or config.server_host
    port = args.port or config.server_port

    app = create_server(config)
    logger.info("Notes API listening on %s:%d (db=%s)", host, port, config.db_path)
    uvicorn.run(app, host=host, port=port, log_config=None)


def install_signal_handlers(loop: asyncio.AbstractEventLoop, controller: SessionController) -> None:
    def handle_signal(signum: signal.Signals) -> None:
        logger.info("%s received, stopping and generating notes...", signum.name)
        controller.request_shutdown(signum.name)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    def handle_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        error = context.get("exception")
        logger.error("Uncaught exception: %s", context.get("message"), exc_info=error)
        if error is not None and not controller.finished:
            controller.report_fault(error)

    loop.set_exception_handler(handle_exception)


async def _run_session(config: VoiceNotesConfig, skip_checks: bool = False) -> int:
    from voice_notes.factory import create_controller

    logger.info("Voice-to-notes assistant starting")

    if not skip_checks and _check(config) != 0:
        logger.error("Critical health check failures, aborting startup")
        return EXIT_FAULT

    controller = create_controller(config)
    install_signal_handlers(asyncio.get_running_loop(), controller)

    try:
        exit_code = await controller.run()
    except MissingCredentialsError as exc:
        logger.error("%s (set them in the environment or %s)", exc, ENV_FILE_PATH)
        return EXIT_FAULT

    if controller.interrupted:
        await asyncio.sleep(config.shutdown_grace_seconds)
    return exit_code


if __name__ == "__main__":
    main()
