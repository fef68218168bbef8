"""
Tests for admin accounts, sessions and user management.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))


@pytest.fixture
def app_module(temp_data_dir):
    import app as module
    return module


class TestCreateUser:
    """Tests for create_user."""

    def test_create(self, app_module):
        """Test a valid account is stored with a password hash."""
        ok, msg = app_module.create_user('Ravi', 'secret1', 'Ravi@Example.com')
        assert ok, msg
        user = app_module.load_users()[0]
        assert user['username'] == 'ravi'
        assert user['email'] == 'ravi@example.com'
        assert user['role'] == 'ADMIN'
        assert user['password_hash'] != 'secret1'

    def test_duplicate_username(self, app_module):
        """Test usernames are unique case-insensitively."""
        app_module.create_user('ravi', 'secret1')
        ok, msg = app_module.create_user('RAVI', 'secret2')
        assert not ok
        assert 'taken' in msg

    def test_duplicate_email(self, app_module):
        """Test emails are unique."""
        app_module.create_user('ravi', 'secret1', 'ravi@example.com')
        ok, msg = app_module.create_user('asha', 'secret1', 'ravi@example.com')
        assert not ok
        assert 'in use' in msg

    @pytest.mark.parametrize("username,password,role", [
        ('r', 'secret1', 'ADMIN'),
        ('-ravi', 'secret1', 'ADMIN'),
        ('ravi', '12345', 'ADMIN'),
        ('ravi', 'secret1', 'OWNER'),
    ])
    def test_invalid(self, app_module, username, password, role):
        """Test username, password and role rules."""
        ok, _ = app_module.create_user(username, password, role=role)
        assert not ok
        assert app_module.load_users() == []

    def test_authenticate_records_login(self, app_module):
        """Test a successful authentication records last_login."""
        app_module.create_user('ravi', 'secret1', 'ravi@example.com')
        user = app_module.authenticate_user('ravi@example.com', 'secret1')
        assert user['username'] == 'ravi'
        assert app_module.load_users()[0]['last_login'] is not None
        assert app_module.authenticate_user('ravi', 'wrong') is None
        assert app_module.authenticate_user('nobody', 'secret1') is None


class TestLogin:
    """Tests for the login, logout and verify routes."""

    def test_login_and_verify(self, app_module, public_client):
        """Test a login opens a session that verify accepts."""
        app_module.create_user('ravi', 'secret1')
        response = public_client.post('/api/auth/login', json={'username': 'ravi', 'password': 'secret1'})
        assert response.status_code == 200
        user = response.get_json()['user']
        assert user['username'] == 'ravi'
        assert 'password_hash' not in user
        assert public_client.get('/api/auth/verify').status_code == 200

    def test_login_by_email(self, app_module, public_client):
        """Test the email works as the identifier."""
        app_module.create_user('ravi', 'secret1', 'ravi@example.com')
        response = public_client.post('/api/auth/login', json={'email': 'ravi@example.com', 'password': 'secret1'})
        assert response.status_code == 200

    def test_wrong_password(self, app_module, public_client):
        """Test bad credentials are 401."""
        app_module.create_user('ravi', 'secret1')
        response = public_client.post('/api/auth/login', json={'username': 'ravi', 'password': 'nope'})
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Invalid credentials'

    def test_missing_fields(self, public_client):
        """Test both fields are required."""
        assert public_client.post('/api/auth/login', json={'username': 'ravi'}).status_code == 400

    def test_inactive_user(self, app_module, public_client):
        """Test deactivated accounts cannot sign in."""
        app_module.create_user('ravi', 'secret1')
        users = app_module.load_users()
        users[0]['isActive'] = False
        app_module.save_users(users)
        response = public_client.post('/api/auth/login', json={'username': 'ravi', 'password': 'secret1'})
        assert response.status_code == 401

    def test_logout(self, app_module, public_client):
        """Test logout ends the session."""
        app_module.create_user('ravi', 'secret1')
        public_client.post('/api/auth/login', json={'username': 'ravi', 'password': 'secret1'})
        assert public_client.post('/api/auth/logout').status_code == 200
        assert public_client.get('/api/auth/verify').status_code == 401

    def test_verify_without_session(self, public_client):
        """Test verify needs a session."""
        assert public_client.get('/api/auth/verify').status_code == 401

    def test_seeded_admin(self, public_client, monkeypatch):
        """Test ADMIN_USERNAME/ADMIN_PASSWORD seed a super admin at startup."""
        import app as app_module
        monkeypatch.setenv('ADMIN_USERNAME', 'owner')
        monkeypatch.setenv('ADMIN_PASSWORD', 'changeme')
        app_module._seed_admin_user()
        response = public_client.post('/api/auth/login', json={'username': 'owner', 'password': 'changeme'})
        assert response.status_code == 200
        assert response.get_json()['user']['role'] == 'SUPERADMIN'

    def test_requests_do_not_seed(self, public_client, monkeypatch):
        """Test setting admin credentials after startup creates no account."""
        import app as app_module
        monkeypatch.setenv('ADMIN_USERNAME', 'owner')
        monkeypatch.setenv('ADMIN_PASSWORD', 'changeme')
        response = public_client.post('/api/auth/login', json={'username': 'owner', 'password': 'changeme'})
        assert response.status_code == 401
        assert app_module.load_users() == []


class TestUserManagement:
    """Tests for the super admin user routes."""

    def test_create_and_list(self, client):
        """Test a super admin can add accounts."""
        response = client.post('/api/admin/users', json={'username': 'asha', 'password': 'secret1'})
        assert response.status_code == 201
        users = client.get('/api/admin/users').get_json()['users']
        assert [u['username'] for u in users] == ['asha']
        assert 'password_hash' not in users[0]

    def test_duplicate_is_conflict(self, client):
        """Test a taken username is 409."""
        client.post('/api/admin/users', json={'username': 'asha', 'password': 'secret1'})
        response = client.post('/api/admin/users', json={'username': 'asha', 'password': 'secret1'})
        assert response.status_code == 409

    def test_update_role(self, client):
        """Test roles can be changed."""
        user = client.post('/api/admin/users', json={'username': 'asha', 'password': 'secret1'}).get_json()['user']
        response = client.put(f"/api/admin/users/{user['id']}", json={'role': 'SUPERADMIN'})
        assert response.get_json()['user']['role'] == 'SUPERADMIN'
        response = client.put(f"/api/admin/users/{user['id']}", json={'role': 'OWNER'})
        assert response.status_code == 400

    def test_delete(self, client):
        """Test deleting another account."""
        user = client.post('/api/admin/users', json={'username': 'asha', 'password': 'secret1'}).get_json()['user']
        assert client.delete(f"/api/admin/users/{user['id']}").status_code == 200
        assert client.get('/api/admin/users').get_json()['users'] == []

    def test_cannot_remove_self(self, client):
        """Test the signed-in admin cannot delete or deactivate themselves."""
        me = client.post('/api/admin/users', json={'username': 'admin', 'password': 'secret1',
                                                   'role': 'SUPERADMIN'}).get_json()['user']
        assert client.delete(f"/api/admin/users/{me['id']}").status_code == 400
        assert client.put(f"/api/admin/users/{me['id']}", json={'isActive': False}).status_code == 400

    def test_unknown_user(self, client):
        """Test unknown ids are 404."""
        assert client.delete('/api/admin/users/nope').status_code == 404

    def test_plain_admin_forbidden(self, client):
        """Test ADMIN role cannot manage users."""
        with client.session_transaction() as sess:
            sess['role'] = 'ADMIN'
        assert client.get('/api/admin/users').status_code == 403

    def test_anonymous_unauthorized(self, public_client):
        """Test anonymous requests are 401."""
        assert public_client.get('/api/admin/users').status_code == 401
