from fastapi.testclient import TestClient

from school_portal.config import settings
from school_portal.main import app
from school_portal.routers import content as content_routes
from school_portal.utils.telemetry import configure_sentry
from school_portal.utils.runtime_settings import RuntimeSettings

client = TestClient(app)


def test_health():
    r = client.get('/health')
    assert r.status_code == 200
    body = r.json()
    assert body['status'] == 'ok'
    assert body['uptime'] >= 0
    assert r.headers['X-Request-ID']


def test_request_id_is_echoed_and_security_headers_set():
    r = client.get('/api/faq', headers={'X-Request-ID': 'req-123'})
    assert r.headers['X-Request-ID'] == 'req-123'
    assert r.headers['X-Content-Type-Options'] == 'nosniff'
    assert r.headers['X-Frame-Options'] == 'SAMEORIGIN'
    assert r.headers['Referrer-Policy'] == 'no-referrer'


def test_oversized_json_is_rejected_before_routing():
    body = b'{"email": "' + b'a' * settings.MAX_JSON_BYTES + b'"}'
    r = client.post('/api/auth/login', content=body, headers={'Content-Type': 'application/json'})
    assert r.status_code == 413
    assert r.json() == {'message': 'Payload too large'}


def test_unknown_route_uses_message_body():
    r = client.get('/api/nothing-here')
    assert r.status_code == 404
    assert r.json() == {'message': 'Not Found'}


def test_cors_follows_runtime_origins():
    preflight = {'Origin': 'http://localhost:5173', 'Access-Control-Request-Method': 'POST'}
    r = client.options('/api/auth/login', headers=preflight)
    assert r.status_code == 200
    assert r.headers['access-control-allow-origin'] == 'http://localhost:5173'
    assert r.headers['access-control-allow-credentials'] == 'true'

    r = client.options('/api/auth/login', headers={**preflight, 'Origin': 'http://evil.test'})
    assert r.status_code == 400
    assert 'access-control-allow-origin' not in r.headers

    r = client.get('/api/faq', headers={'Origin': 'http://localhost:5173'})
    assert r.headers['access-control-allow-origin'] == 'http://localhost:5173'


def test_unhandled_errors_render_500(monkeypatch):
    def explode(self):
        raise RuntimeError('database unavailable')

    monkeypatch.setattr(content_routes.FAQService, 'list', explode)
    failing_client = TestClient(app, raise_server_exceptions=False)
    r = failing_client.get('/api/faq')
    assert r.status_code == 500
    assert r.json() == {'message': 'Internal Server Error'}


def test_sentry_is_only_reconfigured_on_dsn_change():
    assert configure_sentry(RuntimeSettings(sentry_dsn=None)) is False
    # a changed DSN always touches the SDK, even when it is rejected
    assert configure_sentry(RuntimeSettings(sentry_dsn='not a dsn')) is True
    configure_sentry(RuntimeSettings(sentry_dsn=None))
    assert configure_sentry(RuntimeSettings(sentry_dsn=None)) is False
