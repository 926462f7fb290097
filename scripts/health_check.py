import argparse
import json
import sys
from pathlib import Path

import httpx

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from arena_relay.config.settings import get_settings


def main(argv=None):
    settings = get_settings()
    parser = argparse.ArgumentParser(description='Query a running relay')
    parser.add_argument('--url', default=f'http://localhost:{settings.server.port}')
    args = parser.parse_args(argv)

    try:
        response = httpx.get(f'{args.url.rstrip("/")}/health', timeout=5.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        print(f'unhealthy: {e}')
        return 1
    print(json.dumps(response.json(), indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
