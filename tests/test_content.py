import uuid

from fastapi.testclient import TestClient

from school_portal.main import app

client = TestClient(app)


def _announcement(**overrides):
    payload = {
        'title': 'Libur Semester',
        'summary': 'Libur semester ganjil dimulai pekan depan.',
        'content': 'Kegiatan belajar mengajar diliburkan selama dua minggu penuh.',
        'date': '2025-12-20T00:00:00Z',
        'category': 'Akademik',
    }
    payload.update(overrides)
    return payload


def test_announcements_crud_and_ordering(admin):
    old = client.post('/api/announcements', headers=admin.headers, json=_announcement(date='2020-01-01T00:00:00Z'))
    pinned = client.post('/api/announcements', headers=admin.headers, json=_announcement(
        title='Upacara Bendera', date='2019-01-01T00:00:00Z', pinned=True
    ))
    assert old.status_code == 201 and pinned.status_code == 201
    assert pinned.json()['date'] == '2019-01-01T00:00:00.000Z'

    listed = client.get('/api/announcements').json()
    ids = [a['id'] for a in listed]
    assert listed[0]['pinned'] is True
    assert ids.index(pinned.json()['id']) < ids.index(old.json()['id'])

    r = client.put(f"/api/announcements/{old.json()['id']}", headers=admin.headers, json={'category': 'Umum'})
    assert r.status_code == 200
    assert r.json()['category'] == 'Umum'
    assert r.json()['title'] == 'Libur Semester'

    assert client.delete(f"/api/announcements/{old.json()['id']}", headers=admin.headers).status_code == 204
    r = client.delete(f"/api/announcements/{old.json()['id']}", headers=admin.headers)
    assert r.status_code == 404
    assert r.json()['message'] == 'Announcement not found'


def test_announcement_validation_and_roles(admin, teacher):
    r = client.post('/api/announcements', headers=admin.headers, json=_announcement(summary='short'))
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid announcement payload'

    r = client.post('/api/announcements', headers=teacher.headers, json=_announcement())
    assert r.status_code == 403

    r = client.put('/api/announcements/nope', headers=admin.headers, json={'title': 'x'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid update payload'


def test_gallery_slug_lookup(teacher, admin):
    r = client.post('/api/gallery', headers=teacher.headers, json={
        'title': 'Pentas Seni 2025',
        'description': 'Dokumentasi pentas seni tahunan.',
        'imageUrl': '/uploads/assets/pentas.jpg',
        'tags': ['seni', 'acara'],
    })
    assert r.status_code == 201
    item = r.json()
    assert item['tags'] == ['seni', 'acara']
    assert item['slug'].startswith('pentas-seni-2025-')
    assert item['publishedAt']

    assert client.get(f"/api/gallery/{item['slug']}").json()['id'] == item['id']
    assert client.get(f"/api/gallery/{item['id']}").json()['slug'] == item['slug']
    assert client.get('/api/gallery/tidak-ada').status_code == 404

    r = client.put(f"/api/gallery/{item['id']}", headers=teacher.headers, json={'tags': ['seni']})
    assert r.json()['tags'] == ['seni']

    # deleting needs an admin
    assert client.delete(f"/api/gallery/{item['id']}", headers=teacher.headers).status_code == 403
    assert client.delete(f"/api/gallery/{item['id']}", headers=admin.headers).status_code == 204


def test_team_members_keep_order_and_specializations(admin):
    second = client.post('/api/teams', headers=admin.headers, json={
        'name': 'Bu Sari', 'role': 'Guru Biologi', 'category': 'teachers', 'order': 900,
        'specialization': ['Biologi'],
    })
    first = client.post('/api/teams', headers=admin.headers, json={
        'name': 'Pak Budi', 'role': 'Kepala Sekolah', 'category': 'leadership', 'order': 899,
        'photo': '/uploads/budi.jpg',
    })
    assert first.status_code == 201 and second.status_code == 201
    assert first.json()['photo'] == '/uploads/budi.jpg'
    assert second.json()['specialization'] == ['Biologi']

    ids = [m['id'] for m in client.get('/api/teams').json()]
    assert ids.index(first.json()['id']) < ids.index(second.json()['id'])

    r = client.post('/api/teams', headers=admin.headers, json={'name': 'Pak X', 'role': 'Guru', 'category': 'alien'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid team member payload'


def test_faq_crud(admin):
    r = client.post('/api/faq', headers=admin.headers, json={
        'question': 'Kapan pendaftaran dibuka?', 'answer': 'Bulan Maret.', 'category': 'PPDB',
    })
    assert r.status_code == 201
    faq_id = r.json()['id']
    assert r.json()['order'] == 0
    r = client.put(f'/api/faq/{faq_id}', headers=admin.headers, json={'order': 3})
    assert r.json()['order'] == 3
    assert any(f['id'] == faq_id for f in client.get('/api/faq').json())
    assert client.delete(f'/api/faq/{faq_id}', headers=admin.headers).status_code == 204


def test_extracurricular_requires_mentor(teacher):
    base = {
        'name': 'Pramuka',
        'description': 'Kegiatan kepanduan setiap hari Jumat sore.',
        'category': 'Kepemimpinan',
        'schedule': 'Jumat 15:00',
    }
    r = client.post('/api/extracurriculars', headers=teacher.headers, json=base)
    assert r.status_code == 400
    assert r.json()['message'] == 'Pembina ekstrakurikuler wajib diisi'

    r = client.post('/api/extracurriculars', headers=teacher.headers, json={
        **base, 'mentor': 'Pak Andi', 'achievements': ['Juara 1 Jambore'],
    })
    assert r.status_code == 201
    body = r.json()
    assert body['mentorName'] == 'Pak Andi'
    assert body['mentor'] == 'Pak Andi'
    assert body['achievements'] == ['Juara 1 Jambore']

    r = client.put(f"/api/extracurriculars/{body['id']}", headers=teacher.headers, json={'mentorName': ''})
    assert r.status_code == 200
    assert r.json()['mentorName'] == 'Pak Andi'


def _article(slug, **overrides):
    payload = {
        'title': 'Prestasi Olimpiade Sains',
        'slug': slug,
        'summary': 'Siswa kami meraih medali emas olimpiade sains.',
        'content': 'Tim olimpiade sains sekolah kembali mengharumkan nama sekolah di tingkat nasional tahun ini.',
        'tags': ['prestasi'],
    }
    payload.update(overrides)
    return payload


def test_articles_slug_unique_and_lookup(teacher):
    slug = f'olimpiade-{uuid.uuid4().hex[:8]}'
    r = client.post('/api/articles', headers=teacher.headers, json=_article(f'  {slug}  '))
    assert r.status_code == 201
    article = r.json()
    assert article['slug'] == slug
    assert article['tags'] == ['prestasi']

    r = client.post('/api/articles', headers=teacher.headers, json=_article(slug))
    assert r.status_code == 409
    assert r.json()['message'] == 'Slug artikel sudah digunakan'

    assert client.get(f'/api/articles/slug/{slug}').json()['id'] == article['id']
    r = client.get('/api/articles/slug/tidak-ada-artikel')
    assert r.status_code == 404
    assert r.json()['message'] == 'Artikel tidak ditemukan'

    other = client.post('/api/articles', headers=teacher.headers, json=_article(slug + '-2')).json()
    r = client.put(f"/api/articles/{other['id']}", headers=teacher.headers, json={'slug': slug})
    assert r.status_code == 409


def test_wawasan_sections_and_entries(admin):
    r = client.put('/api/wawasan/sejarah', headers=admin.headers, json={
        'title': 'Sejarah Sekolah',
        'mediaUrl': '  ',
        'content': {'intro': 'Berdiri sejak 1965.', 'heritage': {'title': 'Nilai Warisan'}},
    })
    assert r.status_code == 200
    assert r.json()['mediaUrl'] is None

    first = client.post('/api/wawasan/sejarah/timeline', headers=admin.headers, json={
        'period': '1965', 'description': 'Sekolah didirikan oleh yayasan.',
    })
    second = client.post('/api/wawasan/sejarah/timeline', headers=admin.headers, json={
        'period': '1990', 'description': 'Gedung baru diresmikan.',
    })
    assert first.status_code == 201
    assert second.json()['order'] > first.json()['order']
    client.post('/api/wawasan/sejarah/heritage', headers=admin.headers, json={'value': 'Disiplin'})

    section = client.get('/api/wawasan/sejarah').json()
    assert section['content']['intro'] == 'Berdiri sejak 1965.'
    assert section['content']['heritage']['title'] == 'Nilai Warisan'
    assert [v['value'] for v in section['content']['heritage']['values']] == ['Disiplin']
    periods = [e['period'] for e in section['content']['timeline']]
    assert periods.index('1965') < periods.index('1990')

    r = client.delete(f"/api/wawasan/sejarah/timeline/{first.json()['id']}", headers=admin.headers)
    assert r.status_code == 204
    r = client.put(f"/api/wawasan/struktur/entries/{second.json()['id']}", headers=admin.headers, json={
        'position': 'Kepala', 'name': 'Budi',
    })
    assert r.status_code == 404


def test_wawasan_unknown_key(admin):
    r = client.get('/api/wawasan/unknown')
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid wawasan section key'
    r = client.put('/api/wawasan/unknown', headers=admin.headers, json={'title': 'Apa saja'})
    assert r.status_code == 400


def test_virtual_tour_defaults_then_saves(admin):
    current = client.get('/api/virtual-tour').json()['virtualTour']
    assert 'imageUrl' in current

    payload = {'imageUrl': ' /uploads/assets/360.jpg ', 'autoRotate': 1.5, 'hfov': 90}
    r = client.put('/api/virtual-tour', headers=admin.headers, json=payload)
    assert r.status_code in (200, 201)
    tour = r.json()['virtualTour']
    assert tour['imageUrl'] == '/uploads/assets/360.jpg'
    assert tour['hfov'] == 90

    r = client.put('/api/virtual-tour', headers=admin.headers, json={**payload, 'pitch': 10})
    assert r.status_code == 200
    assert r.json()['virtualTour']['id'] == tour['id']
    assert r.json()['virtualTour']['createdAt'] == tour['createdAt']

    r = client.put('/api/virtual-tour', headers=admin.headers, json={'imageUrl': 'x', 'hfov': 10})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid payload'


def test_null_for_required_fields_is_rejected(admin, teacher):
    announcement = client.post('/api/announcements', headers=admin.headers, json=_announcement()).json()
    for body in ({'title': None}, {'pinned': None}, {'date': None}):
        r = client.put(f"/api/announcements/{announcement['id']}", headers=admin.headers, json=body)
        assert r.status_code == 400
        assert r.json()['message'] == 'Invalid update payload'
    # optional columns can still be cleared
    r = client.put(f"/api/announcements/{announcement['id']}", headers=admin.headers, json={'imageUrl': None})
    assert r.status_code == 200

    faq = client.post('/api/faq', headers=admin.headers, json={
        'question': 'Apakah ada seragam khusus?', 'answer': 'Ya, batik setiap Kamis.', 'category': 'Umum',
    }).json()
    r = client.put(f"/api/faq/{faq['id']}", headers=admin.headers, json={'question': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid FAQ payload'

    member = client.post('/api/teams', headers=admin.headers, json={
        'name': 'Bu Rina', 'role': 'Guru Kimia', 'category': 'teachers',
    }).json()
    r = client.put(f"/api/teams/{member['id']}", headers=admin.headers, json={'order': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid team member payload'

    item = client.post('/api/gallery', headers=teacher.headers, json={
        'title': 'Lomba Kebersihan',
        'description': 'Lomba kebersihan kelas antar angkatan.',
        'imageUrl': '/uploads/assets/bersih.jpg',
    }).json()
    r = client.put(f"/api/gallery/{item['id']}", headers=teacher.headers, json={'imageUrl': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid gallery update payload'

    club = client.post('/api/extracurriculars', headers=teacher.headers, json={
        'name': 'Paduan Suara',
        'description': 'Latihan paduan suara setiap hari Rabu sore.',
        'category': 'Seni',
        'schedule': 'Rabu 15:00',
        'mentorName': 'Bu Sari',
    }).json()
    r = client.put(f"/api/extracurriculars/{club['id']}", headers=teacher.headers, json={'schedule': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid update payload'

    article = client.post('/api/articles', headers=teacher.headers, json=_article(f'kegiatan-{uuid.uuid4().hex[:8]}')).json()
    r = client.put(f"/api/articles/{article['id']}", headers=teacher.headers, json={'content': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid update payload'
