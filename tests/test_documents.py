import hashlib
import json
import uuid

from fastapi.testclient import TestClient

from school_portal.main import app
from school_portal.services.documents import coerce_bool, coerce_id_list, coerce_positive_int, content_disposition
from school_portal.utils.uploads import resolve_public_path

client = TestClient(app)


def _issue(account, pdf: bytes, filename='rapor.pdf', **fields):
    data = {
        'title': 'Rapor Semester Ganjil',
        'description': 'Rapor resmi semester ganjil 2025/2026.',
        'issuedFor': 'Siswa Teladan',
    }
    data.update(fields)
    files = {'file': (filename, pdf, 'application/pdf')}
    return client.post('/api/documents', headers=account.headers, data=data, files=files)


def _class_with_student(admin, student):
    school_class = client.post('/api/classes', headers=admin.headers, json={
        'name': f'XII MIPA {uuid.uuid4().hex[:4]}', 'gradeLevel': 12, 'academicYear': '2025/2026',
    }).json()
    client.put(f"/api/classes/{school_class['id']}/members", headers=admin.headers, json={'memberIds': [student.id]})
    return school_class


def test_issue_document_for_a_student(admin, student, make_pdf):
    pdf = make_pdf(pages=2)
    r = _issue(admin, pdf, audienceUserIds=[student.id], metadata='Dokumen asli')
    assert r.status_code == 201, r.text
    document = r.json()
    assert len(document['verificationCode']) == 10
    assert document['verificationCode'] == document['barcodeValue']
    assert document['fileHash'] == hashlib.sha256(pdf).hexdigest()
    assert document['pageCount'] == 2
    assert document['status'] == 'active'
    assert document['metadata'] == {'note': 'Dokumen asli'}
    assert document['issuer']['id'] == admin.id
    assert [a['type'] for a in document['audiences']] == ['USER']
    assert document['audiences'][0]['user']['id'] == student.id
    assert document['shareTokens'] == []
    assert resolve_public_path(document['storedFilePath']).read_bytes() == pdf

    listed = client.get('/api/documents', headers=student.headers).json()
    mine = [d for d in listed if d['id'] == document['id']]
    assert mine
    # students do not see audiences or share links
    assert 'audiences' not in mine[0]
    assert 'shareTokens' not in mine[0]


def test_issue_validation_errors(admin, student, make_pdf):
    r = client.post('/api/documents', headers=admin.headers, data={
        'title': 'Rapor', 'description': 'Deskripsi rapor', 'issuedFor': 'Siswa',
        'audienceUserIds': student.id,
    })
    assert r.status_code == 400
    assert r.json()['message'] == 'File is required'

    r = client.post('/api/documents', headers=admin.headers, data={
        'title': 'Rapor', 'description': 'Deskripsi rapor', 'issuedFor': 'Siswa', 'audienceUserIds': student.id,
    }, files={'file': ('notes.txt', b'plain text, not a pdf', 'text/plain')})
    assert r.status_code == 415
    assert r.json()['message'] == 'Only PDF files are allowed'

    # declared as a PDF but unreadable
    r = _issue(admin, b'plain text, not a pdf', audienceUserIds=student.id)
    assert r.status_code == 400
    assert r.json()['message'] == 'Berkas PDF tidak valid'

    r = _issue(admin, make_pdf())
    assert r.status_code == 400
    assert r.json()['message'] == 'Pilih minimal satu pengguna/kelas atau aktifkan tautan tamu.'

    r = _issue(admin, make_pdf(), audienceUserIds=json.dumps(['ghost-user', student.id]))
    assert r.status_code == 400
    assert r.json()['missingUserIds'] == ['ghost-user']

    r = _issue(admin, make_pdf(), generateShareLink='true', shareLinkMaxDownloads='0')
    assert r.status_code == 400
    assert r.json()['message'] == 'Batas unduhan tamu harus berupa angka bulat lebih dari nol'

    r = _issue(admin, make_pdf(), generateShareLink='true', shareLinkExpiresAt='minggu depan')
    assert r.status_code == 400

    r = _issue(admin, make_pdf(), title='Ra', audienceUserIds=student.id)
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid document payload'


def test_duplicate_file_is_rejected(admin, student, make_pdf):
    pdf = make_pdf()
    assert _issue(admin, pdf, audienceUserIds=student.id).status_code == 201
    r = _issue(admin, pdf, audienceUserIds=student.id)
    assert r.status_code == 409
    assert r.json()['message'] == 'Dokumen dengan hash atau kode verifikasi serupa sudah ada'


def test_teacher_may_only_target_their_classes(admin, teacher, student, make_pdf):
    school_class = _class_with_student(admin, student)
    r = _issue(teacher, make_pdf(), **{'audienceClassIds[]': [school_class['id']]})
    assert r.status_code == 403
    assert r.json()['unauthorizedClassIds'] == [school_class['id']]

    client.post('/api/class-assignments', headers=admin.headers, json={
        'teacherId': teacher.id, 'classId': school_class['id'],
    })
    r = _issue(teacher, make_pdf(), audienceClassIds=school_class['id'])
    assert r.status_code == 201
    document = r.json()
    assert document['audiences'][0]['class']['id'] == school_class['id']

    # the class member sees it, the issuing teacher sees it
    assert document['id'] in [d['id'] for d in client.get('/api/documents', headers=student.headers).json()]
    assert client.get(f"/api/documents/{document['id']}", headers=teacher.headers).status_code == 200
    assert client.get(f"/api/documents/{document['id']}", headers=student.headers).status_code == 200


def test_access_scope(admin, teacher, student, accounts, make_pdf):
    other = _issue(admin, make_pdf(), generateShareLink='yes').json()
    assert client.get(f"/api/documents/{other['id']}", headers=student.headers).status_code == 404
    assert client.get(f"/api/documents/{other['id']}", headers=teacher.headers).status_code == 404
    assert client.get(f"/api/documents/{other['id']}", headers=admin.headers).status_code == 200
    assert client.get('/api/documents', headers=accounts['parent'].headers).status_code == 403


def test_download_is_watermarked_and_logged(admin, student, make_pdf):
    pdf = make_pdf()
    document = _issue(admin, pdf, audienceUserIds=student.id, title='Surat Keterangan Aktif').json()

    r = client.get(f"/api/documents/{document['id']}/download", headers=student.headers)
    assert r.status_code == 200
    assert r.headers['content-type'] == 'application/pdf'
    assert r.headers['content-disposition'] == 'attachment; filename="rapor.pdf"'
    assert r.content[:5] == b'%PDF-'

    logs = client.get(f"/api/documents/{document['id']}/logs", headers=admin.headers).json()
    assert logs['document']['downloads'] == 1
    entry = logs['logs'][0]
    assert entry['verifiedVia'] == 'download'
    assert entry['matched'] is True
    assert entry['submittedHash'] == hashlib.sha256(r.content).hexdigest()
    assert entry['metadata']['originalHash'] == document['fileHash']
    assert entry['verifier']['id'] == student.id

    assert client.get(f"/api/documents/{document['id']}/logs", headers=student.headers).status_code == 403


def test_verify_by_code_hash_and_variant(admin, student, make_pdf):
    pdf = make_pdf()
    document = _issue(admin, pdf, audienceUserIds=student.id).json()

    r = client.post('/api/documents/verify', json={'code': document['verificationCode'].lower()})
    assert r.status_code == 200
    body = r.json()
    assert body['matched'] is True
    assert body['status'] == 'active'
    assert body['document']['id'] == document['id']
    assert body['hash'] == document['fileHash']

    r = client.post('/api/documents/verify', json={'hash': document['fileHash'].upper()})
    assert r.json()['matched'] is True

    downloaded = client.get(f"/api/documents/{document['id']}/download", headers=student.headers).content
    served_hash = hashlib.sha256(downloaded).hexdigest()
    r = client.post('/api/documents/verify', json={'hash': served_hash, 'verifierName': 'HRD'})
    assert r.status_code == 200
    assert r.json()['matched'] is True
    assert r.json()['document']['id'] == document['id']
    assert r.json()['hash'] == served_hash

    r = client.post('/api/documents/verify', json={'code': document['verificationCode'], 'hash': served_hash})
    assert r.json()['matched'] is True

    # right code, foreign hash: the code wins but the hash does not match
    r = client.post('/api/documents/verify', json={'code': document['verificationCode'], 'hash': 'f' * 64})
    assert r.status_code == 200
    assert r.json()['matched'] is False


def test_verify_unknown_and_invalid(admin):
    r = client.post('/api/documents/verify', json={'hash': '0' * 64})
    assert r.status_code == 404
    body = r.json()
    assert body['matched'] is False
    assert body['status'] == 'unknown'
    assert body['hash'] == '0' * 64
    assert body['document'] is None

    r = client.post('/api/documents/verify', json={'verifierName': 'Tanpa kode'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid verification payload'


def test_verify_upload(admin, student, make_pdf):
    pdf = make_pdf()
    document = _issue(admin, pdf, audienceUserIds=student.id).json()

    files = {'file': ('kiriman.pdf', pdf, 'application/pdf')}
    r = client.post('/api/documents/verify/upload', files=files, data={'verifierEmail': 'hrd@company.test'})
    assert r.status_code == 200
    assert r.json()['matched'] is True
    assert r.json()['hash'] == document['fileHash']

    logs = client.get(f"/api/documents/{document['id']}/logs", headers=admin.headers).json()['logs']
    assert logs[0]['verifiedVia'] == 'upload'
    assert logs[0]['verifierEmail'] == 'hrd@company.test'
    assert logs[0]['metadata']['originalFileName'] == 'kiriman.pdf'

    r = client.post('/api/documents/verify/upload', files={'file': ('x.pdf', make_pdf(), 'application/pdf')})
    assert r.status_code == 404
    assert r.json()['matched'] is False

    r = client.post('/api/documents/verify/upload', data={'code': document['verificationCode']})
    assert r.status_code == 400
    assert r.json()['message'] == 'File PDF diperlukan untuk verifikasi'

    r = client.post('/api/documents/verify/upload', files=files, data={'verifierEmail': 'bukan-email'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Data verifikator tidak valid'


def test_revoked_document_no_longer_verifies(admin, student, make_pdf):
    document = _issue(admin, make_pdf(), audienceUserIds=student.id).json()
    r = client.patch(f"/api/documents/{document['id']}/status", headers=admin.headers, json={'status': 'revoked'})
    assert r.status_code == 200
    assert r.json()['status'] == 'revoked'

    r = client.post('/api/documents/verify', json={'code': document['verificationCode']})
    assert r.json()['matched'] is False
    assert r.json()['status'] == 'revoked'
    assert r.json()['document'] == {'id': document['id'], 'status': 'revoked'}

    # students only see active documents
    assert document['id'] not in [d['id'] for d in client.get('/api/documents', headers=student.headers).json()]

    r = client.patch(f"/api/documents/{document['id']}/status", headers=admin.headers, json={'status': 'lost'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid status payload'


def test_share_link_download_limit(admin, make_pdf):
    document = _issue(admin, make_pdf(), generateShareLink='on', shareLinkMaxDownloads='1').json()
    token = document['shareTokens'][0]['token']
    assert len(token) == 24
    assert document['shareTokens'][0]['remainingDownloads'] == 1

    info = client.get(f'/api/documents/share/{token}')
    assert info.status_code == 200
    assert info.json()['document']['id'] == document['id']
    assert 'fileHash' not in info.json()['document']
    assert info.json()['shareToken']['token'] == token

    r = client.get(f'/api/documents/share/{token}/download')
    assert r.status_code == 200
    assert r.content[:5] == b'%PDF-'

    r = client.get(f'/api/documents/share/{token}/download')
    assert r.status_code == 410
    assert r.json()['code'] == 'DOWNLOAD_LIMIT_REACHED'

    logs = client.get(f"/api/documents/{document['id']}/logs", headers=admin.headers).json()['logs']
    assert logs[0]['verifiedVia'] == 'share-download'
    assert logs[0]['verifierRole'] == 'guest'


def test_share_link_expiry_and_status(admin, make_pdf):
    expired = _issue(admin, make_pdf(), generateShareLink='1', shareLinkExpiresAt='2020-01-01T00:00:00Z').json()
    r = client.get(f"/api/documents/share/{expired['shareTokens'][0]['token']}")
    assert r.status_code == 410
    assert r.json()['code'] == 'LINK_EXPIRED'

    document = _issue(admin, make_pdf(), generateShareLink='true').json()
    token = document['shareTokens'][0]['token']
    client.patch(f"/api/documents/{document['id']}/status", headers=admin.headers, json={'status': 'archived'})
    r = client.get(f'/api/documents/share/{token}')
    assert r.status_code == 410
    assert r.json()['code'] == 'DOCUMENT_UNAVAILABLE'

    assert client.get('/api/documents/share/unknown-token').status_code == 404


def test_delete_document(admin, teacher, student, make_pdf):
    document = _issue(admin, make_pdf(), audienceUserIds=student.id).json()
    stored = resolve_public_path(document['storedFilePath'])
    assert stored.is_file()

    assert client.delete(f"/api/documents/{document['id']}", headers=teacher.headers).status_code == 403
    assert client.delete(f"/api/documents/{document['id']}", headers=student.headers).status_code == 403
    assert client.delete(f"/api/documents/{document['id']}", headers=admin.headers).status_code == 204
    assert not stored.exists()
    assert client.get(f"/api/documents/{document['id']}", headers=admin.headers).status_code == 404
    assert client.delete(f"/api/documents/{document['id']}", headers=admin.headers).status_code == 404


def test_form_coercion_helpers():
    assert coerce_id_list(['a', 'b,c', ' ', 'a']) == ['a', 'b', 'c']
    assert coerce_id_list('["x", "y", "x"]') == ['x', 'y']
    assert coerce_id_list('') == []
    assert coerce_bool('Yes') is True
    assert coerce_bool('off') is False
    assert coerce_positive_int(' 3 ') == 3
    assert coerce_positive_int('') is None
    assert content_disposition('a"b/c.pdf') == 'attachment; filename="a_b_c.pdf"'
