import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from cricket import notifications

TOURNAMENT = {'name': 'Summer Cup', 'startDate': '2026-05-01', 'venue': 'Tunda Cricket Ground',
              'ownerParticipationCost': 500}


def test_registration_received_goes_to_captain():
    registration = {'captainEmail': 'ravi@example.com', 'captainName': 'Ravi', 'teamName': 'Tigers',
                    'status': 'PENDING', 'paymentAmount': 1500}
    message = notifications.team_registration_received(registration, TOURNAMENT)
    assert message['to'] == ['ravi@example.com']
    assert message['kind'] == 'team_registration'
    assert 'pending' in message['body']


def test_rejection_includes_reason():
    registration = {'captainEmail': 'ravi@example.com', 'captainName': 'Ravi', 'teamName': 'Tigers',
                    'rejectionReason': 'Late entry'}
    message = notifications.team_registration_rejected(registration, TOURNAMENT)
    assert 'Reason: Late entry' in message['body']


def test_admin_message_drops_empty_recipients():
    owner = {'ownerName': 'Owner 1', 'ownerPhone': '9876500001', 'teamName': 'Franchise 1'}
    message = notifications.admin_new_owner(['admin@example.com', None, ''], owner, TOURNAMENT)
    assert message['to'] == ['admin@example.com']


def test_player_status_messages():
    player = {'name': 'Amit', 'email': 'amit@example.com', 'soldTo': 'Franchise 1', 'soldPrice': 1200}
    sold = notifications.player_status_changed(dict(player, auctionStatus='SOLD'), TOURNAMENT)
    assert sold['kind'] == 'player_sold'
    assert '1200' in sold['body']
    assert notifications.player_status_changed(dict(player, auctionStatus='UNSOLD'), TOURNAMENT)['kind'] == 'player_unsold'
    assert notifications.player_status_changed(dict(player, auctionStatus='PENDING'), TOURNAMENT) is None


def test_owner_verified_carries_token():
    owner = {'ownerName': 'Owner 1', 'ownerEmail': 'owner1@example.com', 'teamName': 'Franchise 1',
             'auctionToken': 'abc123', 'totalBudget': 10000}
    message = notifications.owner_verified(owner, TOURNAMENT)
    assert 'abc123' in message['body']
    assert message['to'] == ['owner1@example.com']
