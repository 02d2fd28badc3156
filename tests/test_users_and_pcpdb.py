import uuid

from fastapi.testclient import TestClient

from school_portal.main import app

client = TestClient(app)


def _email(prefix='user'):
    return f'{prefix}-{uuid.uuid4().hex[:8]}@school.test'


def test_user_crud_and_login(admin):
    email = _email('guru')
    r = client.post('/api/users', headers=admin.headers, json={
        'name': 'Guru Baru',
        'email': email.upper(),
        'role': 'teacher',
        'password': 'rahasia123',
        'phone': '081234567890',
    })
    assert r.status_code == 201
    user = r.json()
    assert user['email'] == email
    assert user['status'] == 'active'
    assert 'passwordHash' not in user

    r = client.post('/api/users', headers=admin.headers, json={
        'name': 'Duplikat', 'email': email, 'role': 'student', 'password': 'rahasia123',
    })
    assert r.status_code == 409
    assert r.json()['message'] == 'Email sudah terdaftar'

    login = client.post('/api/auth/login', json={'email': email, 'password': 'rahasia123'})
    assert login.status_code == 200

    r = client.put(f"/api/users/{user['id']}", headers=admin.headers, json={'password': 'passwordbaru1', 'name': None})
    assert r.status_code == 200
    assert r.json()['name'] == 'Guru Baru'
    assert client.post('/api/auth/login', json={'email': email, 'password': 'rahasia123'}).status_code == 401
    assert client.post('/api/auth/login', json={'email': email, 'password': 'passwordbaru1'}).status_code == 200

    assert client.delete(f"/api/users/{user['id']}", headers=admin.headers).status_code == 204
    assert client.get(f"/api/users/{user['id']}", headers=admin.headers).status_code == 404


def test_user_validation_and_class_links(admin, teacher):
    r = client.post('/api/users', headers=admin.headers, json={
        'name': 'Siswa', 'email': _email(), 'role': 'superuser', 'password': 'rahasia123',
    })
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid user payload'

    r = client.post('/api/users', headers=admin.headers, json={
        'name': 'Siswa Baru', 'email': _email(), 'role': 'student', 'password': 'rahasia123',
        'classIds': ['no-such-class'],
    })
    assert r.status_code == 400
    assert r.json()['missingClassIds'] == ['no-such-class']

    school_class = client.post('/api/classes', headers=admin.headers, json={
        'name': f'X IPS {uuid.uuid4().hex[:4]}', 'gradeLevel': 10, 'academicYear': '2025/2026',
    }).json()
    r = client.post('/api/users', headers=admin.headers, json={
        'name': 'Siswa Baru', 'email': _email(), 'role': 'student', 'password': 'rahasia123',
        'classIds': [school_class['id']],
    })
    assert r.status_code == 201
    assert r.json()['classIds'] == [school_class['id']]
    assert r.json()['classes'][0]['academicYear'] == '2025/2026'

    assert client.get('/api/users', headers=teacher.headers).status_code == 403


def test_referenced_user_cannot_be_deleted(admin):
    homeroom = client.post('/api/users', headers=admin.headers, json={
        'name': 'Wali Kelas', 'email': _email('wali'), 'role': 'teacher', 'password': 'rahasia123',
    }).json()
    client.post('/api/classes', headers=admin.headers, json={
        'name': f'XI MIPA {uuid.uuid4().hex[:4]}', 'gradeLevel': 11, 'academicYear': '2025/2026',
        'homeroomTeacherId': homeroom['id'],
    })
    r = client.delete(f"/api/users/{homeroom['id']}", headers=admin.headers)
    assert r.status_code == 409


def test_pcpdb_submission_and_review(admin):
    r = client.post('/api/pcpdb', json={
        'applicantName': 'Calon Siswa',
        'email': 'Calon@Mail.test',
        'phone': '081298765432',
        'notes': 'Jalur prestasi',
    })
    assert r.status_code == 201
    entry = r.json()
    assert entry['status'] == 'pending'
    assert entry['email'] == 'calon@mail.test'
    assert entry['submittedAt']

    assert client.get('/api/pcpdb').status_code == 401
    assert entry['id'] in [e['id'] for e in client.get('/api/pcpdb', headers=admin.headers).json()]

    r = client.put(f"/api/pcpdb/{entry['id']}", headers=admin.headers, json={'status': 'approved'})
    assert r.status_code == 200
    assert r.json()['reviewedById'] == admin.id
    assert r.json()['reviewedAt']

    r = client.put(f"/api/pcpdb/{entry['id']}", headers=admin.headers, json={'status': 'pending'})
    assert r.json()['reviewedById'] is None
    assert r.json()['reviewedAt'] is None

    r = client.put(f"/api/pcpdb/{entry['id']}", headers=admin.headers, json={'status': 'maybe'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid PCPDB update payload'

    assert client.delete(f"/api/pcpdb/{entry['id']}", headers=admin.headers).status_code == 204
    assert client.delete(f"/api/pcpdb/{entry['id']}", headers=admin.headers).status_code == 404


def test_pcpdb_validation_and_rate_limit(monkeypatch):
    r = client.post('/api/pcpdb', json={'applicantName': 'A', 'email': 'x', 'phone': '1'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid PCPDB submission'

    monkeypatch.setenv('PCPDB_RATE_LIMIT_PER_MIN', '1')
    # the invalid submission above already used the only slot
    r = client.post('/api/pcpdb', json={'applicantName': 'Calon', 'email': 'c@mail.test', 'phone': '0812345678'})
    assert r.status_code == 429
    assert 'Retry-After' in r.headers
