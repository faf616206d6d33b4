"""
Main application for the vision narrator.

Feeds detector output into the assist engine, which stabilizes detections
and narrates them through the configured speech backend. Without a live
detector binding, detections are replayed from a recorded JSON Lines file.

Usage:
    python src/main.py --config config/config.yaml --replay data/session.jsonl --web

Arguments:
    --config: Path to configuration file
    --replay: JSON Lines file of recorded detection frames
    --fps: Replay rate in frames per second
    --web: Start the control API (overrides web.enabled)
"""

import os
import sys
import argparse
import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import uvicorn
import yaml

from models.voice import SUPPORTED_LANGUAGES
from observation.replay import ReplaySource, ReplaySourceConfig
from ops.logging import VALID_LOG_LEVELS, setup_logging
from pipeline.engine import AssistEngine, create_engine_from_config
from web.app import create_app
from web.state import state as web_state

SPEECH_BACKENDS = ("log", "pyttsx3")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Thresholds outside their valid range are clamped later, so only types
    are checked for them here.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['processing', 'announcements', 'voice', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate processing settings
    processing = config.get('processing') or {}
    for key in ('iou_threshold', 'close_obstacle_area_threshold', 'merge_center_distance', 'merge_iou'):
        if key in processing and not _is_number(processing[key]):
            return False, f"processing.{key} must be a number"
    if 'merge_duplicates' in processing and not isinstance(processing['merge_duplicates'], bool):
        return False, "processing.merge_duplicates must be true or false"
    frame_size = processing.get('frame_size')
    if frame_size is not None:
        if not isinstance(frame_size, list) or len(frame_size) != 2:
            return False, "processing.frame_size must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in frame_size):
            return False, "processing.frame_size values must be positive integers"

    tracking = processing.get('tracking') or {}
    if 'min_match_iou' in tracking:
        v = tracking['min_match_iou']
        if not _is_number(v) or not (0 < v <= 1):
            return False, "processing.tracking.min_match_iou must be between 0 and 1"
    if 'growth_ratio' in tracking:
        v = tracking['growth_ratio']
        if not _is_number(v) or v <= 1:
            return False, "processing.tracking.growth_ratio must be greater than 1"
    if 'vertical_tolerance' in tracking and not _is_number(tracking['vertical_tolerance']):
        return False, "processing.tracking.vertical_tolerance must be a number"

    # Validate announcement settings
    announcements = config.get('announcements') or {}
    for key in ('min_pause_s', 'emergency_repeat_s', 'alert_repeat_s', 'close_distance_m'):
        if key in announcements:
            v = announcements[key]
            if not _is_number(v) or v < 0:
                return False, f"announcements.{key} must be a non-negative number"
    if 'max_items' in announcements:
        v = announcements['max_items']
        if not isinstance(v, int) or isinstance(v, bool) or v <= 0:
            return False, "announcements.max_items must be a positive integer"

    # Validate voice settings
    voice = config.get('voice') or {}
    if 'language' in voice and voice['language'] not in SUPPORTED_LANGUAGES:
        return False, f"voice.language must be one of: {', '.join(SUPPORTED_LANGUAGES)}"
    for key in ('speech_rate', 'pitch', 'volume'):
        if key in voice and not _is_number(voice[key]):
            return False, f"voice.{key} must be a number"

    # Optional alert timings
    alerts = config.get('alerts') or {}
    for key, v in alerts.items():
        if not _is_number(v) or v <= 0:
            return False, f"alerts.{key} must be a positive number"

    # Optional speech backend selector
    speech = config.get('speech') or {}
    backend = speech.get('backend', 'log')
    if backend not in SPEECH_BACKENDS:
        return False, f"speech.backend must be one of: {', '.join(SPEECH_BACKENDS)}"

    # Optional web settings
    web = config.get('web') or {}
    if 'port' in web:
        port = web['port']
        if not isinstance(port, int) or not (0 < port < 65536):
            return False, "web.port must be an integer between 1 and 65535"

    # Validate log settings
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def start_web_server(host: str, port: int) -> threading.Thread:
    """Run the control API on a daemon thread."""
    def run_web_app():
        uvicorn.run(
            create_app(),
            host=host,
            port=port,
            log_level="info",
        )

    web_thread = threading.Thread(target=run_web_app, name="web", daemon=True)
    web_thread.start()
    logging.info(f"Control API started on {host}:{port}")
    return web_thread


def run_replay(engine: AssistEngine, source: ReplaySource) -> int:
    """
    Drive the engine from a replay source until it is exhausted.

    Returns:
        Number of frames replayed.
    """
    frames = 0
    with source:
        for frame in source:
            engine.on_detection_results(frame.records, frame.frame_size)
            web_state.mark_frame()
            frames += 1
    return frames


def main():
    """Main application function."""
    # Parse command-line arguments
    parser = argparse.ArgumentParser(description='Vision Narrator - spoken scene narration')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--replay', type=str, default=None,
                        help='JSON Lines file of recorded detection frames')
    parser.add_argument('--fps', type=float, default=None,
                        help='Replay rate in frames per second')
    parser.add_argument('--web', action='store_true',
                        help='Start the control API (overrides web.enabled)')
    args = parser.parse_args()

    # Load configuration
    config = load_config(args.config)

    # Validate configuration
    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    # Setup logging
    setup_logging(config['log_path'], config['log_level'])

    logging.info("Starting Vision Narrator")

    engine = create_engine_from_config(config)
    web_state.set_config(config, args.config)
    web_state.set_engine(engine)
    web_state.update_system_stats({"start_time": time.time()})

    web_cfg = engine.config.web
    if args.web or web_cfg.enabled:
        start_web_server(web_cfg.host, web_cfg.port)

    engine.start(status_timer=True)

    try:
        if args.replay:
            replay_cfg = ReplaySourceConfig.from_dict(config.get('replay', {}) or {})
            replay_cfg.path = args.replay
            if args.fps is not None:
                replay_cfg.fps = args.fps
            if replay_cfg.frame_size is None and engine.config.processing.frame_size:
                replay_cfg.frame_size = tuple(engine.config.processing.frame_size)

            frames = run_replay(engine, ReplaySource(replay_cfg))
            logging.info(f"Replay finished after {frames} frames")
        else:
            # No detector attached: keep the status tick and control API alive
            logging.info("No replay file given; waiting for detections (Ctrl+C to stop)")
            while True:
                time.sleep(1.0)
    except KeyboardInterrupt:
        logging.info("Stopping on user request")
    except RuntimeError as e:
        logging.error(f"Observation source failed: {e}")
        sys.exit(1)
    finally:
        engine.shutdown()
        logging.info("Vision Narrator stopped")


if __name__ == "__main__":
    main()
