import json
import os
import typing

from fastapi.testclient import TestClient

from conftest import PASSWORD, ensure_user
from school_portal.auth import create_token
from school_portal.config import Settings, _split_origins
from school_portal.main import app
from school_portal.utils.runtime_settings import RuntimeSettings, RuntimeSettingsStore, sanitize_origins
from school_portal.utils.rate_limit import SlidingWindowRateLimiter

client = TestClient(app)


def test_login_returns_token_and_session_user(accounts):
    r = client.post('/api/auth/login', json={'email': 'Admin@School.test ', 'password': PASSWORD})
    assert r.status_code == 200
    body = r.json()
    assert body['token']
    assert body['user']['email'] == 'admin@school.test'
    assert body['user']['role'] == 'admin'
    assert body['user']['lastLogin'].endswith('Z')
    assert 'passwordHash' not in body['user']

    me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()['id'] == accounts['admin'].id


def test_login_rejects_bad_credentials_with_same_message(accounts):
    ensure_user('Siswa Nonaktif', 'inactive@school.test', 'student', status='inactive')
    for email, password in [
        ('admin@school.test', 'wrong-password'),
        ('nobody@school.test', PASSWORD),
        ('inactive@school.test', PASSWORD),
    ]:
        r = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert r.status_code == 401
        assert r.json()['message'] == 'Email atau password salah'


def test_login_payload_validation():
    r = client.post('/api/auth/login', json={'email': 'not-an-email', 'password': 'x'})
    assert r.status_code == 400
    body = r.json()
    assert body['message'] == 'Invalid credentials payload'
    assert body['issues']


def test_login_rate_limit(monkeypatch):
    monkeypatch.setenv('LOGIN_RATE_LIMIT_PER_MIN', '2')
    payload = {'email': 'admin@school.test', 'password': 'wrong-password'}
    assert client.post('/api/auth/login', json=payload).status_code == 401
    assert client.post('/api/auth/login', json=payload).status_code == 401
    r = client.post('/api/auth/login', json=payload)
    assert r.status_code == 429
    assert int(r.headers['Retry-After']) >= 1


def test_me_requires_valid_token():
    r = client.get('/api/auth/me')
    assert r.status_code == 401
    assert r.json()['message'] == 'Authorization header required'

    r = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-jwt'})
    assert r.status_code == 401
    assert r.json()['message'] == 'Invalid token'


def test_me_for_deleted_user_is_404():
    token = create_token('missing-user-id', 'student', 'ghost@school.test', 'Ghost')
    r = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 404


def test_settings_are_admin_only(teacher):
    assert client.get('/api/settings').status_code == 401
    r = client.get('/api/settings', headers=teacher.headers)
    assert r.status_code == 403
    assert r.json()['message'] == 'Forbidden'


def test_settings_update_and_restore(admin):
    original = client.get('/api/settings', headers=admin.headers).json()
    assert original['allowedOrigins'] == ['http://localhost:5173']

    r = client.put('/api/settings', headers=admin.headers, json={
        'virusTotalApiKey': '  vt-key  ',
        'allowedOrigins': 'http://a.test,\nhttp://b.test, http://a.test',
    })
    assert r.status_code == 200
    updated = r.json()
    assert updated['virusTotalApiKey'] == 'vt-key'
    assert updated['allowedOrigins'] == ['http://a.test', 'http://b.test']
    # absent keys keep their value
    assert updated['geminiApiKey'] == original['geminiApiKey']

    r = client.put('/api/settings', headers=admin.headers, json={
        'virusTotalApiKey': '',
        'allowedOrigins': original['allowedOrigins'],
    })
    assert r.status_code == 200
    assert r.json()['virusTotalApiKey'] is None
    assert r.json()['allowedOrigins'] == original['allowedOrigins']


def test_settings_payload_validation(admin):
    r = client.put('/api/settings', headers=admin.headers, json={'sentryDsn': 'x' * 600})
    assert r.status_code == 400
    assert r.json()['message'] == 'Payload pengaturan tidak valid'


def test_sanitize_origins_splits_and_dedupes():
    assert sanitize_origins('a, b\r\nc,,a') == ['a', 'b', 'c']
    assert sanitize_origins(['x', ' x ', 'y']) == ['x', 'y']
    assert sanitize_origins(None) == []


def test_runtime_store_persists_and_notifies(tmp_path):
    path = tmp_path / 'settings.json'
    store = RuntimeSettingsStore(path)
    loaded = store.load()
    assert path.exists()
    assert isinstance(loaded, RuntimeSettings)

    seen = []
    unsubscribe = store.subscribe(seen.append)
    store.update({'geminiApiKey': 'g-key', 'allowedOrigins': []})
    assert seen and seen[0].gemini_api_key == 'g-key'
    # an empty origin list keeps the previous origins
    assert store.get().allowed_origins == loaded.allowed_origins
    assert json.loads(path.read_text())['geminiApiKey'] == 'g-key'

    unsubscribe()
    store.update({'geminiApiKey': None})
    assert len(seen) == 1

    store.reset()
    assert store.load().gemini_api_key is None


def test_runtime_store_falls_back_on_corrupt_file(tmp_path):
    path = tmp_path / 'settings.json'
    path.write_text('[1, 2, 3]')
    store = RuntimeSettingsStore(path)
    assert store.load().virus_total_api_key is None


def test_listener_failure_does_not_break_update(tmp_path):
    store = RuntimeSettingsStore(tmp_path / 'settings.json')
    store.load()

    def broken(_):
        raise RuntimeError('boom')

    store.subscribe(broken)
    assert store.update({'virusTotalApiKey': 'k'}).virus_total_api_key == 'k'


def test_runtime_store_update_exports_process_env(tmp_path, monkeypatch):
    for key in ('GOOGLE_GEMINI_API_KEY', 'SENTRY_DSN', 'ALLOW_ORIGINS'):
        monkeypatch.setenv(key, 'stale')
    store = RuntimeSettingsStore(tmp_path / 'settings.json')
    store.load()

    store.update({
        'geminiApiKey': '  g-env-key  ',
        'sentryDsn': '',
        'allowedOrigins': 'https://sekolah.test, https://admin.sekolah.test',
    })
    assert os.environ['GOOGLE_GEMINI_API_KEY'] == 'g-env-key'
    assert os.environ['SENTRY_DSN'] == ''
    assert os.environ['ALLOW_ORIGINS'] == 'https://sekolah.test,https://admin.sekolah.test'


def test_settings_annotations_resolve():
    hints = typing.get_type_hints(Settings)
    assert hints['SENTRY_DSN'] == typing.Optional[str]
    assert hints['ALLOW_ORIGINS'] == typing.List[str]
    assert _split_origins(None) == ['http://localhost:5173']
    assert _split_origins(' https://a.test ,, https://b.test') == ['https://a.test', 'https://b.test']


def test_rate_limiter_forgets_idle_clients():
    now = [1000.0]
    limiter = SlidingWindowRateLimiter(clock=lambda: now[0], sweep_interval=30)
    for n in range(50):
        assert limiter.allow(f'login:10.0.0.{n}', 2, 60) == (True, 0)
    assert len(limiter) == 50

    assert limiter.allow('login:10.0.0.1', 2, 60) == (True, 0)
    assert limiter.allow('login:10.0.0.1', 2, 60)[0] is False

    now[0] += 61
    assert limiter.allow('login:10.0.0.99', 2, 60) == (True, 0)
    assert len(limiter) == 1
    assert limiter.allow('login:10.0.0.1', 2, 60) == (True, 0)
    assert len(limiter) == 2
