"""Run the Focus Fade dashboard server."""

import argparse
import logging

from focus_fade.config import load_settings
from focus_fade.monitor import FocusMonitor
from focus_fade.server import create_app

logger = logging.getLogger("FocusFade")


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler("focus_fade.log"),
            logging.StreamHandler()
        ]
    )


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Focus Fade: AI focus monitoring dashboard")
    parser.add_argument("--settings", type=str, default=None,
                        help="Path to the JSON settings file (default: focus_fade_settings.json)")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=5000, help="Port to listen on (default: 5000)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    configure_logging(args.debug)

    config = load_settings(args.settings)
    monitor = FocusMonitor(config)
    app = create_app(monitor, settings_path=args.settings)

    logger.info(f"Dashboard available at http://{args.host}:{args.port}/")
    try:
        app.run(host=args.host, port=args.port, threaded=True)
    finally:
        monitor.shutdown()


if __name__ == "__main__":
    main()
