"""
Integration tests for team registration routes.
"""
import time
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import tournament_payload, team_registration_payload


def register(test_client, tid, **overrides):
    return test_client.post(f'/api/tournaments/{tid}/register', json=team_registration_payload(**overrides))


class TestPublicRegistration:
    """Tests for POST /api/tournaments/<id>/register."""

    def test_public_registration_pending(self, public_client, league_tournament):
        """Test a public registration is PENDING with the entry fee due."""
        response = register(public_client, league_tournament['id'])
        assert response.status_code == 201
        data = response.get_json()
        assert data['registration']['status'] == 'PENDING'
        assert data['registration']['paymentStatus'] == 'PENDING'
        assert data['registration']['paymentAmount'] == 1500
        assert data['registration']['playerCount'] == 2
        assert data['team']['name'] == 'Tunda Tigers'

    def test_squad_stored_with_jersey_numbers(self, client, public_client, league_tournament):
        """Test the squad lands in the player registry."""
        team = register(public_client, league_tournament['id']).get_json()['team']
        players = client.get(f"/api/players?teamId={team['id']}").get_json()['players']
        assert sorted(p['jerseyNumber'] for p in players) == [1, 2]
        assert not any(p['isSubstitute'] for p in players)

    def test_substitutes_beyond_team_size(self, client, public_client):
        """Test players beyond the team size are substitutes."""
        tid = client.post('/api/tournaments', json=tournament_payload(teamSize=1)).get_json()['tournament']['id']
        team = register(public_client, tid).get_json()['team']
        players = client.get(f"/api/teams/{team['id']}").get_json()['team']['players']
        assert [p['isSubstitute'] for p in players] == [False, True]

    def test_notification_queued(self, client, public_client, league_tournament):
        """Test the captain gets a confirmation message."""
        register(public_client, league_tournament['id'])
        notifications = client.get('/api/admin/notifications').get_json()['notifications']
        assert [n['kind'] for n in notifications] == ['team_registration']
        assert notifications[0]['to'] == ['ravi@example.com']
        assert notifications[0]['status'] == 'queued'

    def test_validation(self, public_client, league_tournament):
        """Test an invalid payload is rejected with details."""
        response = register(public_client, league_tournament['id'], captainPhone='123')
        assert response.status_code == 400
        assert 'captainPhone: Phone number must be at least 10 digits' in response.get_json()['details']

    def test_unknown_tournament(self, public_client, temp_data_dir):
        """Test registering for a missing tournament is 404."""
        assert register(public_client, 'nope').status_code == 404

    def test_duplicate(self, public_client, league_tournament):
        """Test the same team and captain email cannot register twice."""
        register(public_client, league_tournament['id'])
        response = register(public_client, league_tournament['id'], captainEmail='RAVI@example.com')
        assert response.status_code == 409

    def test_deadline(self, client, public_client):
        """Test registrations after the deadline are refused."""
        tid = client.post('/api/tournaments', json=tournament_payload(
            registrationDeadline='2020-01-01')).get_json()['tournament']['id']
        response = register(public_client, tid)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Registration deadline has passed'

    def test_capacity(self, client):
        """Test confirmed teams cannot exceed maxTeams."""
        tid = client.post('/api/tournaments', json=tournament_payload(maxTeams=1)).get_json()['tournament']['id']
        assert register(client, tid, registrationType='ADMIN').status_code == 201
        response = register(client, tid, teamName='Tunda Lions', registrationType='ADMIN')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Tournament has reached maximum number of teams'

    def test_admin_registration_confirmed(self, client, league_tournament):
        """Test admin registrations are confirmed immediately."""
        response = register(client, league_tournament['id'], registrationType='ADMIN', paymentMethod='ADMIN')
        registration = response.get_json()['registration']
        assert registration['status'] == 'CONFIRMED'
        assert registration['approvedBy'] == 'admin'
        assert registration['paymentStatus'] == 'COMPLETED'

    def test_admin_registration_needs_session(self, public_client, league_tournament):
        """Test anonymous users cannot file admin registrations."""
        response = register(public_client, league_tournament['id'], registrationType='ADMIN')
        assert response.status_code == 401

    def test_rate_limited(self, public_client, league_tournament):
        """Test the 31st submission within an hour is refused."""
        import app as app_module
        key = ('127.0.0.1', 'api_register_team', league_tournament['id'])
        app_module._rate_limit_store[key] = [time.time()] * app_module.RATE_LIMIT_PER_HOUR
        response = register(public_client, league_tournament['id'])
        assert response.status_code == 429

    def test_status_lookup(self, public_client, league_tournament):
        """Test captains can look up their registration by email."""
        tid = league_tournament['id']
        register(public_client, tid)
        response = public_client.get(f'/api/tournaments/{tid}/register?email=Ravi@example.com')
        assert response.status_code == 200
        assert response.get_json()['registration']['status'] == 'PENDING'
        assert public_client.get(f'/api/tournaments/{tid}/register?email=x@example.com').status_code == 404
        assert public_client.get(f'/api/tournaments/{tid}/register').status_code == 400


class TestRateLimitHelper:
    """Tests for check_rate_limit."""

    def test_allows_until_limit(self, temp_data_dir):
        """Test the limit is per ip, endpoint and tournament."""
        import app as app_module
        for _ in range(3):
            assert app_module.check_rate_limit('1.2.3.4', 'register', 'cup', max_per_hour=3)
        assert not app_module.check_rate_limit('1.2.3.4', 'register', 'cup', max_per_hour=3)
        assert app_module.check_rate_limit('1.2.3.4', 'register', 'other-cup', max_per_hour=3)

    def test_old_entries_expire(self, temp_data_dir):
        """Test submissions older than an hour are forgotten."""
        import app as app_module
        app_module._rate_limit_store[('1.2.3.4', 'register', 'cup')] = [time.time() - 7200] * 3
        assert app_module.check_rate_limit('1.2.3.4', 'register', 'cup', max_per_hour=3)


class TestRegistrationAdmin:
    """Tests for the admin registration views and actions."""

    @pytest.fixture
    def pending(self, public_client, league_tournament):
        return register(public_client, league_tournament['id']).get_json()['registration']

    def test_tournament_registrations(self, client, league_tournament, pending):
        """Test the per-tournament list includes teams."""
        data = client.get(f"/api/tournaments/{league_tournament['id']}/registrations").get_json()
        assert data['registrations'][0]['team']['name'] == 'Tunda Tigers'

    def test_requires_login(self, public_client, pending):
        """Test registration admin routes need a session."""
        assert public_client.get('/api/registrations').status_code == 401
        assert public_client.patch(f"/api/registrations/{pending['id']}", json={'action': 'approve'}).status_code == 401

    def test_listing_and_summary(self, client, public_client, league_tournament, pending):
        """Test the listing filters, paginates and summarizes."""
        register(client, league_tournament['id'], teamName='Tunda Lions', registrationType='ADMIN')
        data = client.get('/api/registrations?limit=1').get_json()
        assert data['pagination'] == {'page': 1, 'limit': 1, 'total': 2, 'totalPages': 2}
        data = client.get('/api/registrations?status=CONFIRMED').get_json()
        assert [r['teamName'] for r in data['registrations']] == ['Tunda Lions']
        summary = client.get('/api/registrations?summary=true').get_json()['summary']
        assert summary == {'total': 2, 'pending': 1, 'confirmed': 1, 'rejected': 0}

    def test_invalid_status_filter(self, client, pending):
        """Test unknown statuses are rejected."""
        assert client.get('/api/registrations?status=MAYBE').status_code == 400

    def test_detail(self, client, league_tournament, pending):
        """Test the detail view carries squad and tournament excerpt."""
        data = client.get(f"/api/registrations/{pending['id']}").get_json()['registration']
        assert [p['name'] for p in data['players']] == ['Amit Shah', 'Kiran Joshi']
        assert data['tournament']['id'] == league_tournament['id']

    def test_approve(self, client, pending):
        """Test approval confirms and notifies the captain."""
        response = client.patch(f"/api/registrations/{pending['id']}", json={'action': 'approve'})
        assert response.status_code == 200
        assert response.get_json()['registration']['status'] == 'CONFIRMED'
        kinds = [n['kind'] for n in client.get('/api/admin/notifications').get_json()['notifications']]
        assert 'team_registration_approved' in kinds

    def test_approve_twice(self, client, pending):
        """Test a confirmed registration cannot be approved again."""
        client.patch(f"/api/registrations/{pending['id']}", json={'action': 'approve'})
        response = client.patch(f"/api/registrations/{pending['id']}", json={'action': 'approve'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Only pending registrations can be approved'

    def test_reject(self, client, pending):
        """Test rejection keeps the reason."""
        response = client.patch(f"/api/registrations/{pending['id']}",
                                json={'action': 'reject', 'reason': 'Squad too small'})
        registration = response.get_json()['registration']
        assert registration['status'] == 'REJECTED'
        assert registration['rejectionReason'] == 'Squad too small'
        assert registration['rejectedBy'] == 'admin'

    def test_update_payment_and_notes(self, client, pending):
        """Test payment and notes updates persist."""
        client.patch(f"/api/registrations/{pending['id']}",
                     json={'action': 'updatePayment', 'paymentStatus': 'COMPLETED', 'paymentMethod': 'UPI'})
        client.patch(f"/api/registrations/{pending['id']}", json={'action': 'updateNotes', 'notes': 'Paid at ground'})
        data = client.get(f"/api/registrations/{pending['id']}").get_json()['registration']
        assert data['paymentStatus'] == 'COMPLETED'
        assert data['paymentMethod'] == 'UPI'
        assert data['notes'] == 'Paid at ground'

    def test_invalid_action(self, client, pending):
        """Test unknown actions are rejected."""
        response = client.patch(f"/api/registrations/{pending['id']}", json={'action': 'archive'})
        assert response.status_code == 400

    def test_unknown_registration(self, client, pending):
        """Test unknown registrations are 404."""
        assert client.patch('/api/registrations/nope', json={'action': 'approve'}).status_code == 404
        assert client.get('/api/registrations/nope').status_code == 404
