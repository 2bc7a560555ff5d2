from kervan.extensions import db
from kervan.models import AuditLog, PasswordResetToken, User, UserStatus


def register(client, **overrides):
    data = {
        'email': 'Lasha@Kervan.ge',
        'password': 'secret123',
        'first_name': 'Lasha',
        'last_name': 'Gelashvili',
        'language': 'en',
    }
    data.update(overrides)
    return client.post('/api/auth/register', json=data)


def test_register_returns_token_and_customer(client):
    response = register(client)
    assert response.status_code == 201
    body = response.get_json()
    assert body['ok'] is True
    assert body['token']
    assert body['user']['email'] == 'lasha@kervan.ge'
    assert body['user']['role'] == 'CUSTOMER'
    assert body['user']['preferences']['language'] == 'en'


def test_register_rejects_duplicate_email(client, customer):
    response = register(client, email=customer['email'])
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Email is already registered'


def test_register_validation_errors(client):
    response = register(client, email='not-an-email', password='123')
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'Validation failed'
    fields = {e['field'] for e in body['errors']}
    assert {'email', 'password'} <= fields


def test_registration_is_audited(app, client):
    register(client)
    with app.app_context():
        entry = AuditLog.query.filter_by(action='REGISTER').one()
        assert entry.get_payload() == {'email': 'lasha@kervan.ge'}


def test_login_success(client, customer):
    response = client.post('/api/auth/login', json={
        'email': customer['email'],
        'password': customer['password'],
    })
    assert response.status_code == 200
    token = response.get_json()['token']

    me = client.get('/api/auth/me',
                    headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    assert me.get_json()['user']['id'] == customer['id']


def test_login_wrong_password(client, customer):
    response = client.post('/api/auth/login', json={
        'email': customer['email'],
        'password': 'wrong-password',
    })
    assert response.status_code == 401


def test_login_unknown_user(client):
    response = client.post('/api/auth/login', json={
        'email': 'nobody@kervan.ge',
        'password': 'whatever',
    })
    assert response.status_code == 401


def test_login_suspended_account(app, client, customer):
    with app.app_context():
        user = db.session.get(User, customer['id'])
        user.status = UserStatus.SUSPENDED
        db.session.commit()

    response = client.post('/api/auth/login', json={
        'email': customer['email'],
        'password': customer['password'],
    })
    assert response.status_code == 403


def test_token_of_inactive_user_is_rejected(app, client, customer):
    with app.app_context():
        user = db.session.get(User, customer['id'])
        user.status = UserStatus.INACTIVE
        db.session.commit()

    response = client.get('/api/auth/me', headers=customer['headers'])
    assert response.status_code == 401


def test_me_requires_token(client):
    response = client.get('/api/auth/me')
    assert response.status_code == 401
    assert response.get_json()['login_required'] is True


def test_garbage_token_is_rejected(client):
    response = client.get('/api/auth/me',
                          headers={'Authorization': 'Bearer not.a.jwt'})
    assert response.status_code == 401


def test_update_profile(client, customer):
    response = client.put('/api/auth/profile', headers=customer['headers'],
                          json={'city': 'Batumi', 'language': 'tr'})
    assert response.status_code == 200
    user = response.get_json()['user']
    assert user['address']['city'] == 'Batumi'
    assert user['preferences']['language'] == 'tr'


def test_change_password(client, customer):
    response = client.put('/api/auth/change-password',
                          headers=customer['headers'],
                          json={'current_password': 'wrong',
                                'new_password': 'newsecret'})
    assert response.status_code == 400

    response = client.put('/api/auth/change-password',
                          headers=customer['headers'],
                          json={'current_password': customer['password'],
                                'new_password': 'newsecret'})
    assert response.status_code == 200

    login = client.post('/api/auth/login', json={
        'email': customer['email'], 'password': 'newsecret'})
    assert login.status_code == 200


def test_logout(client, customer):
    response = client.post('/api/auth/logout', headers=customer['headers'])
    assert response.status_code == 200


def test_forgot_password_does_not_reveal_accounts(app, client, customer):
    known = client.post('/api/auth/forgot-password',
                        json={'email': customer['email']})
    unknown = client.post('/api/auth/forgot-password',
                          json={'email': 'ghost@kervan.ge'})
    assert known.status_code == unknown.status_code == 200
    assert known.get_json() == unknown.get_json()

    with app.app_context():
        assert PasswordResetToken.query.filter_by(
            user_id=customer['id']).count() == 1


def test_reset_password_flow(app, client, customer):
    client.post('/api/auth/forgot-password',
                json={'email': customer['email']})
    with app.app_context():
        token = PasswordResetToken.query.filter_by(
            user_id=customer['id']).one().token

    response = client.post(f'/api/auth/reset-password/{token}',
                           json={'password': 'brandnew1'})
    assert response.status_code == 200

    login = client.post('/api/auth/login', json={
        'email': customer['email'], 'password': 'brandnew1'})
    assert login.status_code == 200

    reused = client.post(f'/api/auth/reset-password/{token}',
                         json={'password': 'another1'})
    assert reused.status_code == 400


def test_reset_password_unknown_token(client):
    response = client.post('/api/auth/reset-password/deadbeef',
                           json={'password': 'brandnew1'})
    assert response.status_code == 400
