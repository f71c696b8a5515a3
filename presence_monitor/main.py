"""
Main application entry point for the presence monitor.
"""
import argparse
import signal
import sys
import threading
from typing import List, Optional

from loguru import logger
from prometheus_client import start_http_server
from pydantic import ValidationError

from .alerts.base import AlertSink, LogAlertSink
from .alerts.webhook import WebhookAlertDispatcher
from .config import ConfigStore, Settings, SignalingConfig, get_settings
from .detection.cascade import DetectorKind
from .events.store import DecisionStore
from .session import CaptureSession, SessionOutcome, load_detector, open_camera
from .signaling import SignalingController
from .utils.logging import setup_logging

EXIT_OK = 0
EXIT_DEVICE_ERROR = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Raise rate-limited alerts on continuous human presence")
    parser.add_argument("--detector", choices=[k.value for k in DetectorKind], default=None,
                        help="Cascade used for detection")
    parser.add_argument("--camera", type=int, default=None, help="Camera index")
    parser.add_argument("--resources", default=None, help="Directory holding the cascade XML files")
    parser.add_argument("--evidence-dir", default=None, help="Directory for evidence frames")
    parser.add_argument("--no-evidence", action="store_true", help="Disable evidence frame saving")
    parser.add_argument("--no-api", action="store_true", help="Do not start the admin API")
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    """
    Overlay command-line options on the environment settings.

    Raises:
        pydantic.ValidationError: if an option value is invalid
    """
    overrides = {}
    if args.detector:
        overrides["detector"] = args.detector
    if args.camera is not None:
        overrides["camera_index"] = args.camera
    if args.resources:
        overrides["resources_path"] = args.resources
    if args.evidence_dir:
        overrides["evidence_dir"] = args.evidence_dir
    if args.no_evidence:
        overrides["evidence_saving_enabled"] = False
    if args.no_api:
        overrides["api_enabled"] = False
    if args.log_level:
        overrides["log_level"] = args.log_level
    return Settings(**{**settings.model_dump(), **overrides})


def build_alert_sink(settings: Settings) -> AlertSink:
    if settings.enable_webhook and settings.webhook_url:
        dispatcher = WebhookAlertDispatcher(settings.webhook_url, settings.webhook_timeout_seconds)
        dispatcher.start()
        return dispatcher
    return LogAlertSink()


def start_api(settings: Settings, config_store: ConfigStore, decision_store: DecisionStore,
              controller: SignalingController) -> threading.Thread:
    import uvicorn

    from .api.app import create_app

    app = create_app(config_store, decision_store, controller)
    server = uvicorn.Server(uvicorn.Config(app, host=settings.api_host, port=settings.api_port,
                                           log_level="warning"))
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    logger.info(f"Admin API listening on http://{settings.api_host}:{settings.api_port}")
    return thread


def run(settings: Settings, stop_event: Optional[threading.Event] = None) -> int:
    stop_event = stop_event or threading.Event()

    try:
        config_store = ConfigStore(SignalingConfig.from_settings(settings))
    except ValueError as e:
        logger.error(f"Invalid signaling configuration: {e}")
        return EXIT_CONFIG_ERROR

    detector_result = load_detector(settings.detector, settings.resources_path)
    if not detector_result.ok:
        logger.error(detector_result.message)
        return EXIT_CONFIG_ERROR

    source_result = open_camera(settings.camera_index)
    if not source_result.ok:
        logger.error(source_result.message)
        return EXIT_DEVICE_ERROR

    decision_store = DecisionStore(settings.max_decisions)
    alert_sink = build_alert_sink(settings)
    controller = SignalingController(
        config_store=config_store,
        alert_sink=alert_sink,
        decision_store=decision_store,
        source_id=f"camera_{settings.camera_index}",
    )

    if settings.api_enabled:
        start_api(settings, config_store, decision_store, controller)

    session = CaptureSession(source_result.value, detector_result.value, controller, config_store)
    try:
        outcome = session.run(stop_event)
    finally:
        alert_sink.close()

    if outcome is SessionOutcome.DEVICE_ERROR:
        return EXIT_DEVICE_ERROR
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    try:
        settings = apply_args(get_settings(), args)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG_ERROR
    setup_logging(settings.log_level, settings.log_file, settings.log_json)

    logger.info("=" * 60)
    logger.info(f"{settings.app_name}")
    logger.info("=" * 60)
    logger.info(f"Detector: {settings.detector}")
    logger.info(f"Max gap: {settings.max_gap_ms}ms, min continuous: {settings.min_continuous_ms}ms, "
                f"min resignal gap: {settings.min_resignal_gap_ms}ms")
    logger.info("=" * 60)

    if settings.enable_metrics:
        start_http_server(settings.metrics_port)
        logger.info(f"Metrics server started on port {settings.metrics_port}")

    stop_event = threading.Event()

    def _signal_handler(signum, frame):
        logger.info(f"Received signal {signum}")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    exit_code = run(settings, stop_event)
    logger.info("Exiting program")
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
