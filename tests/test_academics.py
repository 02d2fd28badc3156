import uuid

from fastapi.testclient import TestClient

from school_portal.main import app

client = TestClient(app)


def _code():
    return 'S' + uuid.uuid4().hex[:5].upper()


def _class(admin, **overrides):
    payload = {'name': f'XII MIPA {uuid.uuid4().hex[:4]}', 'gradeLevel': 12, 'academicYear': '2025/2026'}
    payload.update(overrides)
    r = client.post('/api/classes', headers=admin.headers, json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def _subject(admin, **overrides):
    payload = {'name': 'Matematika', 'code': _code()}
    payload.update(overrides)
    r = client.post('/api/subjects', headers=admin.headers, json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def test_class_crud_with_homeroom_and_members(admin, teacher, student):
    school_class = _class(admin, homeroomTeacherId=teacher.id)
    assert school_class['homeroomTeacher']['id'] == teacher.id
    assert school_class['memberCount'] == 0

    r = client.put(f"/api/classes/{school_class['id']}/members", headers=admin.headers, json={
        'memberIds': [student.id, f' {student.id} ', ''],
    })
    assert r.status_code == 200
    assert [m['id'] for m in r.json()['members']] == [student.id]

    r = client.put(f"/api/classes/{school_class['id']}/members", headers=admin.headers, json={
        'memberIds': ['missing-user'],
    })
    assert r.status_code == 400
    assert r.json()['missingUserIds'] == ['missing-user']

    me = client.get('/api/auth/me', headers=student.headers).json()
    assert school_class['id'] in me['classIds']

    # members block deletion
    r = client.delete(f"/api/classes/{school_class['id']}", headers=admin.headers)
    assert r.status_code == 409
    client.put(f"/api/classes/{school_class['id']}/members", headers=admin.headers, json={'memberIds': []})
    assert client.delete(f"/api/classes/{school_class['id']}", headers=admin.headers).status_code == 204
    assert client.get(f"/api/classes/{school_class['id']}", headers=admin.headers).status_code == 404


def test_class_validation(admin, teacher):
    r = client.post('/api/classes', headers=admin.headers, json={'name': 'X', 'gradeLevel': 0})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid class payload'

    r = client.post('/api/classes', headers=admin.headers, json={
        'name': 'X MIPA 9', 'gradeLevel': 10, 'academicYear': '2025/2026', 'homeroomTeacherId': 'ghost',
    })
    assert r.status_code == 400
    assert r.json()['message'] == 'Wali kelas tidak ditemukan'

    assert client.post('/api/classes', headers=teacher.headers, json={}).status_code == 403
    assert client.get('/api/classes', headers=teacher.headers).status_code == 200


def test_assignments_are_unique_per_teacher_class_subject(admin, teacher):
    school_class = _class(admin)
    subject = _subject(admin)
    payload = {'teacherId': teacher.id, 'classId': school_class['id'], 'subjectId': subject['id'], 'role': 'Pengajar'}
    r = client.post('/api/class-assignments', headers=admin.headers, json=payload)
    assert r.status_code == 201
    assignment = r.json()
    assert assignment['class']['id'] == school_class['id']
    assert assignment['subject']['code'] == subject['code']

    r = client.post('/api/class-assignments', headers=admin.headers, json=payload)
    assert r.status_code == 409
    assert r.json()['message'] == 'Guru sudah ditugaskan pada kelas dan mata pelajaran ini'

    # a missing subject is its own slot, also unique
    no_subject = {'teacherId': teacher.id, 'classId': school_class['id']}
    assert client.post('/api/class-assignments', headers=admin.headers, json=no_subject).status_code == 201
    assert client.post('/api/class-assignments', headers=admin.headers, json=no_subject).status_code == 409

    listed = client.get(f"/api/class-assignments?classId={school_class['id']}", headers=admin.headers).json()
    assert len(listed) == 2

    detail = client.get(f"/api/classes/{school_class['id']}", headers=admin.headers).json()
    assert len(detail['teacherAssignments']) == 2

    r = client.post('/api/class-assignments', headers=admin.headers, json={**payload, 'classId': 'nope'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Kelas tidak ditemukan'

    assert client.delete(f"/api/class-assignments/{assignment['id']}", headers=admin.headers).status_code == 204


def test_subject_codes_are_uppercased_and_unique(admin):
    code = _code()
    subject = _subject(admin, code=f' {code.lower()} ')
    assert subject['code'] == code
    r = client.post('/api/subjects', headers=admin.headers, json={'name': 'Fisika', 'code': code})
    assert r.status_code == 409
    assert r.json()['message'] == 'Kode mata pelajaran sudah dipakai'

    r = client.put(f"/api/subjects/{subject['id']}", headers=admin.headers, json={'credits': 4})
    assert r.json()['credits'] == 4
    assert r.json()['code'] == code


def test_schedules_validate_times_and_refs(admin, teacher, student):
    school_class = _class(admin)
    subject = _subject(admin)
    base = {
        'classId': school_class['id'],
        'subjectId': subject['id'],
        'teacherId': teacher.id,
        'dayOfWeek': 'Monday',
        'startTime': '2025-07-14T07:00:00Z',
        'endTime': '2025-07-14T08:30:00Z',
        'location': 'Ruang 12',
    }
    r = client.post('/api/schedules', headers=teacher.headers, json=base)
    assert r.status_code == 201
    schedule = r.json()
    assert schedule['startTime'] == '2025-07-14T07:00:00.000Z'
    assert schedule['subject']['id'] == subject['id']

    r = client.post('/api/schedules', headers=admin.headers, json={**base, 'endTime': '2025-07-14T06:00:00Z'})
    assert r.status_code == 400
    assert r.json()['message'] == 'End time must be after start time'

    r = client.post('/api/schedules', headers=admin.headers, json={**base, 'startTime': 'pagi'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid startTime'

    r = client.post('/api/schedules', headers=admin.headers, json={**base, 'subjectId': 'ghost'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Mata pelajaran tidak ditemukan'

    r = client.put(f"/api/schedules/{schedule['id']}", headers=admin.headers, json={
        'endTime': '2025-07-14T06:59:00Z',
    })
    assert r.status_code == 400

    listed = client.get(f"/api/schedules?classId={school_class['id']}", headers=student.headers)
    assert listed.status_code == 200
    assert [s['id'] for s in listed.json()] == [schedule['id']]

    # schedules now pin the subject
    r = client.delete(f"/api/subjects/{subject['id']}", headers=admin.headers)
    assert r.status_code == 409

    assert client.delete(f"/api/schedules/{schedule['id']}", headers=teacher.headers).status_code == 403
    assert client.delete(f"/api/schedules/{schedule['id']}", headers=admin.headers).status_code == 204


def test_grades_parse_scores(admin, teacher, student):
    school_class = _class(admin)
    subject = _subject(admin)
    base = {
        'studentId': student.id,
        'subjectId': subject['id'],
        'classId': school_class['id'],
        'teacherId': teacher.id,
        'term': 'Semester 1',
        'score': ' 87.5 ',
    }
    r = client.post('/api/grades', headers=teacher.headers, json=base)
    assert r.status_code == 201
    grade = r.json()
    assert grade['score'] == 87.5
    assert grade['student']['id'] == student.id
    assert grade['issuedAt']

    r = client.post('/api/grades', headers=teacher.headers, json={**base, 'score': 'sembilan'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid score value'

    r = client.post('/api/grades', headers=teacher.headers, json={**base, 'issuedAt': 'kemarin'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid issuedAt value'

    r = client.put(f"/api/grades/{grade['id']}", headers=teacher.headers, json={'score': 90})
    assert r.json()['score'] == 90

    listed = client.get(f"/api/grades?subjectId={subject['id']}&term=Semester 1", headers=teacher.headers).json()
    assert [g['id'] for g in listed] == [grade['id']]
    assert client.get('/api/grades', headers=student.headers).status_code == 403


def test_notifications_mark_and_filter(admin, teacher):
    r = client.post('/api/notifications', headers=admin.headers, json={
        'title': 'Rapat Guru',
        'body': 'Rapat guru hari Senin pukul 13.00.',
        'type': 'meeting',
        'userId': teacher.id,
        'metadata': 'Bawa laporan',
    })
    assert r.status_code == 201
    notification = r.json()
    assert notification['metadata'] == {'note': 'Bawa laporan'}
    assert notification['user']['id'] == teacher.id
    assert notification['readAt'] is None

    r = client.post(f"/api/notifications/{notification['id']}/mark", headers=teacher.headers)
    assert r.status_code == 200
    assert r.json()['readAt'] is not None

    unread = client.get(f'/api/notifications?userId={teacher.id}&read=false', headers=teacher.headers).json()
    assert notification['id'] not in [n['id'] for n in unread]

    r = client.post(f"/api/notifications/{notification['id']}/mark", headers=teacher.headers, json={'read': False})
    assert r.json()['readAt'] is None

    r = client.put(f"/api/notifications/{notification['id']}", headers=admin.headers, json={'metadata': {'room': 'A1'}})
    assert r.json()['metadata'] == {'room': 'A1'}

    assert client.post('/api/notifications/nope/mark', headers=teacher.headers).status_code == 404
    assert client.delete(f"/api/notifications/{notification['id']}", headers=admin.headers).status_code == 204


def test_events_range_filter(admin, teacher):
    title = f'Ujian {uuid.uuid4().hex[:6]}'
    r = client.post('/api/events', headers=teacher.headers, json={
        'title': title,
        'startAt': '2031-03-01T08:00:00+07:00',
        'endAt': '2031-03-01T12:00:00+07:00',
    })
    assert r.status_code == 201
    event = r.json()
    assert event['startAt'] == '2031-03-01T01:00:00.000Z'
    assert event['createdBy']['id'] == teacher.id

    r = client.post('/api/events', headers=teacher.headers, json={
        'title': title, 'startAt': '2031-03-01T08:00:00Z', 'endAt': '2031-03-01T07:00:00Z',
    })
    assert r.status_code == 400
    assert r.json()['message'] == 'End time must be after start time'

    inside = client.get('/api/events?from=2031-02-28T00:00:00Z&to=2031-03-02T00:00:00Z', headers=teacher.headers)
    assert event['id'] in [e['id'] for e in inside.json()]
    outside = client.get('/api/events?from=2031-03-02T00:00:00Z', headers=teacher.headers)
    assert event['id'] not in [e['id'] for e in outside.json()]

    r = client.get('/api/events?from=besok', headers=teacher.headers)
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid from value'

    assert client.delete(f"/api/events/{event['id']}", headers=admin.headers).status_code == 204


def test_updates_reject_null_for_required_fields(admin, teacher, student):
    school_class = _class(admin)
    subject = _subject(admin)

    r = client.put(f"/api/classes/{school_class['id']}", headers=admin.headers, json={'academicYear': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid class update payload'

    r = client.put(f"/api/subjects/{subject['id']}", headers=admin.headers, json={'name': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid subject update payload'
    # a null code leaves the code unchanged
    r = client.put(f"/api/subjects/{subject['id']}", headers=admin.headers, json={'code': None, 'credits': 2})
    assert r.status_code == 200
    assert r.json()['code'] == subject['code']

    assignment = client.post('/api/class-assignments', headers=admin.headers, json={
        'teacherId': teacher.id, 'classId': school_class['id'], 'subjectId': subject['id'],
    }).json()
    r = client.put(f"/api/class-assignments/{assignment['id']}", headers=admin.headers, json={'teacherId': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid assignment update payload'

    schedule = client.post('/api/schedules', headers=admin.headers, json={
        'classId': school_class['id'],
        'subjectId': subject['id'],
        'dayOfWeek': 'Tuesday',
        'startTime': '2025-07-15T07:00:00Z',
        'endTime': '2025-07-15T08:00:00Z',
    }).json()
    r = client.put(f"/api/schedules/{schedule['id']}", headers=admin.headers, json={'dayOfWeek': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid schedule update payload'
    r = client.put(f"/api/schedules/{schedule['id']}", headers=admin.headers, json={'startTime': '2025-07-15T14:30:00+07:00'})
    assert r.status_code == 200
    assert r.json()['startTime'] == '2025-07-15T07:30:00.000Z'

    grade = client.post('/api/grades', headers=teacher.headers, json={
        'studentId': student.id, 'subjectId': subject['id'], 'term': 'Semester 2', 'score': 75,
    }).json()
    r = client.put(f"/api/grades/{grade['id']}", headers=teacher.headers, json={'term': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid grade update payload'

    notification = client.post('/api/notifications', headers=admin.headers, json={
        'title': 'Ujian Susulan', 'body': 'Ujian susulan hari Kamis.', 'type': 'exam', 'targetRole': 'student',
    }).json()
    r = client.put(f"/api/notifications/{notification['id']}", headers=admin.headers, json={'body': None})
    assert r.status_code == 400
    assert r.json()['message'] == 'Invalid notification update payload'
    r = client.put(f"/api/notifications/{notification['id']}", headers=admin.headers, json={'metadata': None})
    assert r.status_code == 200
