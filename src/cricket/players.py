"""
Global player registry helpers: search keywords, matching and the
end-of-tournament transfer of auction players into the registry.
"""
import uuid
from datetime import datetime
from typing import List, Dict, Optional

MOVABLE_STATUSES = ('APPROVED',)

PROFILE_FIELDS = (
    'name', 'email', 'phone', 'dateOfBirth', 'address', 'city', 'state', 'pincode',
    'position', 'battingStyle', 'bowlingStyle', 'experience', 'age', 'fatherName',
    'emergencyContact', 'emergencyPhone', 'emergencyRelation', 'profileImageUrl',
)


def search_keywords(player: Dict) -> str:
    """Lowercase search text built from name, city and father's name."""
    parts = [player.get('name'), player.get('city'), player.get('fatherName')]
    return ' '.join(str(part) for part in parts if part).strip().lower()


def _same(a, b) -> bool:
    return bool(a) and bool(b) and str(a).strip().lower() == str(b).strip().lower()


def find_matching_player(registry: List[Dict], candidate: Dict) -> Optional[Dict]:
    """Find a registry player with the same name and the same phone, email or city."""
    for player in registry:
        if not _same(player.get('name'), candidate.get('name')):
            continue
        if (_same(player.get('phone'), candidate.get('phone'))
                or _same(player.get('email'), candidate.get('email'))
                or _same(player.get('city'), candidate.get('city'))):
            return player
    return None


def profile_from_auction_player(auction_player: Dict) -> Dict:
    if not (auction_player.get('name') or '').strip():
        raise ValueError('Auction player has no name')
    profile = {key: auction_player.get(key) for key in PROFILE_FIELDS}
    profile['state'] = profile['state'] or 'Gujarat'
    profile['totalMatches'] = auction_player.get('totalMatches') or 0
    profile['totalRuns'] = auction_player.get('totalRuns') or 0
    profile['totalWickets'] = auction_player.get('totalWickets') or 0
    profile['searchKeywords'] = search_keywords(auction_player)
    profile['isActive'] = True
    return profile


def move_auction_players(auction_players: List[Dict], registry: List[Dict]) -> Dict:
    """Upsert approved auction players into the registry.

    Both lists are mutated in place. A player that cannot be converted is
    reported under ``errors`` and left untouched.
    """
    moved, updated, errors = [], [], []
    for auction_player in auction_players:
        if auction_player.get('auctionStatus') not in MOVABLE_STATUSES:
            continue
        try:
            profile = profile_from_auction_player(auction_player)
        except ValueError as e:
            errors.append({'auctionPlayerId': auction_player.get('id'), 'name': auction_player.get('name'),
                           'error': str(e)})
            continue

        existing = find_matching_player(registry, profile)
        now = datetime.now().isoformat()
        if existing:
            existing.update(profile)
            existing['updatedAt'] = now
            updated.append({'auctionPlayerId': auction_player['id'], 'playerId': existing['id'],
                            'name': profile['name'], 'action': 'updated'})
        else:
            profile['id'] = uuid.uuid4().hex[:12]
            profile['teamId'] = None
            profile['createdAt'] = now
            registry.append(profile)
            moved.append({'auctionPlayerId': auction_player['id'], 'playerId': profile['id'],
                          'name': profile['name'], 'action': 'created'})
        auction_player['auctionStatus'] = 'MOVED_TO_PLAYER_TABLE'

    return {
        'movedPlayers': len(moved),
        'updatedPlayers': len(updated),
        'errors': len(errors),
        'details': {'moved': moved, 'updated': updated, 'errors': errors},
    }
