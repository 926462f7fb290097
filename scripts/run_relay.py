import argparse
import sys
from pathlib import Path

import uvicorn

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from arena_relay.api.app import create_app
from arena_relay.config.logging_config import LogFormat, LoggingConfig, setup_logging
from arena_relay.config.settings import Settings, get_settings
from arena_relay.core.relay import build_relay


def main(argv=None):
    parser = argparse.ArgumentParser(description='Run the arena market relay')
    parser.add_argument('--config', help='JSON settings file (overrides environment)')
    parser.add_argument('--host')
    parser.add_argument('--port', type=int)
    parser.add_argument('--log-level')
    args = parser.parse_args(argv)

    settings = Settings.load_from_file(Path(args.config)) if args.config else get_settings()
    level = (args.log_level or settings.log_level.value).upper()
    setup_logging(LoggingConfig(level=level, format=LogFormat(settings.log_format)))

    if not settings.has_webhook_secret:
        print('warning: ARENA_RELAY_WEBHOOK_SECRET is not set; all authenticated routes will return 401')
    if not settings.feed.is_configured:
        print('warning: ARENA_RELAY_FEED__API_KEY is not set; the feed may reject the connection')

    relay = build_relay(settings)
    app = create_app(relay, settings, manage_relay=True)
    uvicorn.run(
        app,
        host=args.host or settings.server.host,
        port=args.port or settings.server.port,
        log_config=None,
    )


if __name__ == '__main__':
    main()
