"""Run a quick request against the app through FastAPI's TestClient.

Usage: python scripts/smoke_request.py [PATH]   (defaults to /health)
"""

import sys
import os

# Ensure the project root is on sys.path so `school_portal` can be imported
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient

from school_portal.main import app


def run(path: str = '/health') -> int:
    client = TestClient(app)
    resp = client.get(path)
    print('STATUS:', resp.status_code)
    print('REQUEST ID:', resp.headers.get('X-Request-ID'))
    if resp.headers.get('content-type', '').startswith('application/json'):
        print('JSON:', resp.json())
    else:
        print('CONTENT:', resp.text[:500])
    return 0 if resp.status_code < 400 else 1


if __name__ == '__main__':
    sys.exit(run(sys.argv[1] if len(sys.argv) > 1 else '/health'))
