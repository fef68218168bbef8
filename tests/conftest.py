"""
Shared pytest fixtures for cricket tournament manager tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
os.environ.setdefault('SECRET_KEY', 'test-secret-key')

from cricket.models import Team


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the app at an empty data directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.setattr(app_module, '_rate_limit_store', {})
    monkeypatch.delenv('ADMIN_USERNAME', raising=False)
    monkeypatch.delenv('ADMIN_PASSWORD', raising=False)
    return str(data_dir)


@pytest.fixture
def client(temp_data_dir):
    """Create a test client signed in as a super admin."""
    from app import app
    app.config['TESTING'] = True
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['user'] = 'admin'
        sess['role'] = 'SUPERADMIN'
    yield client


@pytest.fixture
def public_client(temp_data_dir):
    """Create an anonymous test client."""
    from app import app
    app.config['TESTING'] = True
    yield app.test_client()


def tournament_payload(**overrides):
    payload = {
        'name': 'Summer Cup',
        'startDate': '2026-05-01',
        'endDate': '2026-05-20',
        'organizers': ['Ravi Patel'],
        'competitionType': 'LEAGUE',
        'status': 'REGISTRATION_OPEN',
        'entryFee': 1500,
    }
    payload.update(overrides)
    return payload


def team_registration_payload(**overrides):
    payload = {
        'teamName': 'Tunda Tigers',
        'captainName': 'Ravi Patel',
        'captainPhone': '9876543210',
        'captainEmail': 'ravi@example.com',
        'players': [
            {'name': 'Amit Shah', 'position': 'BATSMAN', 'experience': 'ADVANCED'},
            {'name': 'Kiran Joshi', 'position': 'BOWLER', 'experience': 'INTERMEDIATE'},
        ],
    }
    payload.update(overrides)
    return payload


def owner_payload(index=1, **overrides):
    payload = {
        'ownerName': f'Owner {index}',
        'ownerPhone': f'98765000{index:02d}',
        'ownerEmail': f'owner{index}@example.com',
        'teamName': f'Franchise {index}',
    }
    payload.update(overrides)
    return payload


def auction_player_payload(index=1, **overrides):
    payload = {
        'name': f'Player {index}',
        'phone': f'91234000{index:02d}',
        'email': f'player{index}@example.com',
        'position': 'ALL_ROUNDER',
        'city': 'Tunda',
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def league_tournament(client):
    """A league tournament with registrations open."""
    response = client.post('/api/tournaments', json=tournament_payload())
    assert response.status_code == 201
    return response.get_json()['tournament']


@pytest.fixture
def auction_tournament(client):
    """An auction tournament with small numbers for budget arithmetic."""
    response = client.post('/api/tournaments', json=tournament_payload(
        name='Auction League',
        competitionType='AUCTION_LEAGUE',
        auctionBudget=10000,
        minPlayerPoints=500,
        minPlayersPerTeam=3,
        maxPlayersPerTeam=5,
        auctionTeamCount=4,
    ))
    assert response.status_code == 201
    return response.get_json()['tournament']


@pytest.fixture
def sample_teams():
    """Four teams for fixture generation."""
    return [Team(f"t{i}", f"Team {name}") for i, name in enumerate("ABCD", start=1)]
