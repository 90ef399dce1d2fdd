from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import jwt
import pytest
from fastapi.testclient import TestClient

from backend.create_admin import create_user
from backend.database import get_db
from backend.main import app

PROTECTED_ROUTES = [
    ('get', '/api/contacts'),
    ('get', '/api/contacts/export'),
    ('put', '/api/contacts/1'),
    ('delete', '/api/contacts/1'),
    ('get', '/api/appointments'),
    ('post', '/api/appointments'),
    ('put', '/api/appointments/1'),
    ('delete', '/api/appointments/1'),
    ('get', '/api/surgery-slots'),
    ('post', '/api/surgery-slots'),
    ('delete', '/api/surgery-slots/1'),
    ('get', '/api/dashboard/stats'),
]


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def untouched_store():
    store = MagicMock()

    def override_get_db():
        yield store

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield store
    finally:
        app.dependency_overrides.clear()


def _login(client: TestClient, username: str = 'admin', password: str = 'secret') -> str:
    response = client.post('/api/auth/login', json={'username': username, 'password': password})
    assert response.status_code == 200
    return response.json()['token']


def _auth(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


def test_login_contact_lifecycle_end_to_end(client, admin_user) -> None:
    token = _login(client)

    assert client.get('/api/contacts', headers=_auth(token)).json() == []

    submitted = client.post(
        '/api/public/contacts',
        json={'name': 'Jane Doe', 'email': 'jane@example.com', 'phone': '0400 000 000', 'message': 'Hello'},
    )
    assert submitted.status_code == 201

    contacts = client.get('/api/contacts', headers=_auth(token)).json()
    assert len(contacts) == 1
    assert contacts[0]['status'] == 'new'
    assert 'createdAt' in contacts[0]

    updated = client.put(f"/api/contacts/{contacts[0]['id']}", json={'status': 'contacted'}, headers=_auth(token))
    assert updated.status_code == 200
    assert updated.json()['status'] == 'contacted'


def test_login_response_shape(client, admin_user) -> None:
    response = client.post('/api/auth/login', json={'username': 'admin', 'password': 'secret'})

    body = response.json()
    assert set(body) == {'token', 'user'}
    assert body['user'] == {'id': admin_user.id, 'username': 'admin', 'email': 'admin@clinic.example', 'role': 'admin'}


def test_bad_credentials_return_same_401(client, admin_user) -> None:
    wrong_password = client.post('/api/auth/login', json={'username': 'admin', 'password': 'wrong'})
    unknown_user = client.post('/api/auth/login', json={'username': 'nobody', 'password': 'secret'})

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {'detail': 'Invalid credentials'}


@pytest.mark.parametrize(('method', 'path'), PROTECTED_ROUTES)
def test_protected_routes_reject_missing_token_before_store_access(untouched_store, method: str, path: str) -> None:
    response = getattr(TestClient(app), method)(path)

    assert response.status_code == 401
    assert response.json() == {'detail': 'Access token required'}
    assert untouched_store.method_calls == []


@pytest.mark.parametrize(('method', 'path'), PROTECTED_ROUTES)
def test_protected_routes_reject_foreign_signature_before_store_access(
    untouched_store,
    method: str,
    path: str,
) -> None:
    now = datetime.now(timezone.utc)
    forged = jwt.encode(
        {'sub': '1', 'username': 'admin', 'role': 'admin', 'iat': now, 'exp': now + timedelta(hours=1)},
        'attacker-secret',
        algorithm='HS256',
    )

    response = getattr(TestClient(app), method)(path, headers=_auth(forged))

    assert response.status_code == 403
    assert response.json() == {'detail': 'Invalid token'}
    assert untouched_store.method_calls == []


def test_appointment_delete_is_strict_and_stats_track_upcoming(client, admin_user) -> None:
    token = _login(client)
    assert client.get('/api/dashboard/stats', headers=_auth(token)).json()['upcomingAppointments'] == 0

    future_date = (datetime.now() + timedelta(days=7)).date().isoformat()
    created = client.post(
        '/api/appointments',
        json={
            'patientName': 'Jane Doe',
            'patientEmail': 'jane@example.com',
            'patientPhone': '0400 000 000',
            'appointmentDate': future_date,
            'appointmentTime': '10:00',
            'service': 'Hearing assessment',
        },
        headers=_auth(token),
    )
    assert created.status_code == 201
    assert created.json()['status'] == 'pending'

    stats = client.get('/api/dashboard/stats', headers=_auth(token)).json()
    assert stats['upcomingAppointments'] == 1
    assert stats['pendingAppointments'] == 1

    appointment_id = created.json()['id']
    first_delete = client.delete(f'/api/appointments/{appointment_id}', headers=_auth(token))
    second_delete = client.delete(f'/api/appointments/{appointment_id}', headers=_auth(token))

    assert first_delete.status_code == 200
    assert first_delete.json() == {'message': 'Appointment deleted successfully'}
    assert second_delete.status_code == 404
    assert client.get('/api/appointments', headers=_auth(token)).json() == []


def test_appointment_in_unavailable_window_is_rejected(client, admin_user) -> None:
    token = _login(client)
    slot = client.post(
        '/api/surgery-slots',
        json={'title': 'Surgery', 'startTime': '2030-03-04T09:00:00', 'endTime': '2030-03-04T12:00:00'},
        headers=_auth(token),
    )
    assert slot.status_code == 201
    assert slot.json()['createdBy'] == 'admin'

    response = client.post(
        '/api/appointments',
        json={
            'patientName': 'Jane Doe',
            'patientEmail': 'jane@example.com',
            'patientPhone': '123',
            'appointmentDate': '2030-03-04',
            'appointmentTime': '11:30',
            'service': 'Hearing assessment',
        },
        headers=_auth(token),
    )

    assert response.status_code == 409


def test_staff_role_cannot_delete_but_admin_can(client, db_session, admin_user) -> None:
    create_user(db_session, 'reception', 'reception@clinic.example', 'front-desk', role='staff')
    admin_token = _login(client)
    staff_token = _login(client, 'reception', 'front-desk')
    contact = client.post(
        '/api/public/contacts',
        json={'name': 'Jane', 'email': 'jane@example.com', 'phone': '1', 'message': 'Hi'},
    ).json()

    assert client.get('/api/contacts', headers=_auth(staff_token)).status_code == 200
    denied = client.delete(f"/api/contacts/{contact['id']}", headers=_auth(staff_token))
    allowed = client.delete(f"/api/contacts/{contact['id']}", headers=_auth(admin_token))

    assert denied.status_code == 403
    assert denied.json() == {'detail': 'Insufficient permissions'}
    assert allowed.status_code == 200


def test_invalid_contact_status_is_rejected(client, admin_user) -> None:
    token = _login(client)
    contact = client.post(
        '/api/public/contacts',
        json={'name': 'Jane', 'email': 'jane@example.com', 'phone': '1', 'message': 'Hi'},
    ).json()

    response = client.put(f"/api/contacts/{contact['id']}", json={'status': 'archived'}, headers=_auth(token))

    assert response.status_code == 400
    assert response.json() == {'detail': "Invalid status 'archived'."}


def test_me_returns_claims(client, admin_user) -> None:
    token = _login(client)

    response = client.get('/api/auth/me', headers=_auth(token))

    assert response.json() == {'id': str(admin_user.id), 'username': 'admin', 'role': 'admin'}


def test_incomplete_appointment_body_returns_400(client, admin_user) -> None:
    token = _login(client)

    response = client.post('/api/appointments', json={'patientName': 'Jane'}, headers=_auth(token))

    assert response.status_code == 400
    assert 'patientEmail' in response.json()['detail']


def test_reversed_surgery_slot_returns_400(client, admin_user) -> None:
    token = _login(client)

    response = client.post(
        '/api/surgery-slots',
        json={'title': 'Surgery', 'startTime': '2030-03-04T12:00:00', 'endTime': '2030-03-04T09:00:00'},
        headers=_auth(token),
    )

    assert response.status_code == 400
    assert response.json() == {'detail': 'Start time must be before end time.'}
    assert client.get('/api/surgery-slots', headers=_auth(token)).json() == []
