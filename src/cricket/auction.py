"""
Live player auction: rounds, bidding rules and sales.

The ``Auction`` class operates on plain dicts loaded from the tournament's
YAML files, so the caller loads, mutates through it and saves. Budgets are
never reserved by bids: a team owner's remaining budget and player count
only change when a player is sold.
"""
import math
import random
import uuid
from collections import Counter
from datetime import datetime
from typing import List, Dict, Optional, Tuple

from cricket.models import DEFAULT_MIN_PLAYER_POINTS, DEFAULT_AUCTION_BUDGET, DEFAULT_MAX_PLAYERS_PER_TEAM

BIDDABLE_STATUSES = ('AVAILABLE', 'APPROVED')
BUDGET_WARNING_FACTOR = 1.5
RECENT_SALES_LIMIT = 10


class AuctionError(Exception):
    """Base exception for auction rule violations.

    ``details`` is merged into the JSON error body by the web layer.
    """
    status = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class AuctionNotFound(AuctionError):
    """Raised when a player, owner or round does not exist."""
    status = 404


class AuctionStateError(AuctionError):
    """Raised when the auction is in the wrong state for an operation."""
    pass


class BidRejected(AuctionError):
    """Raised when a bid breaks a bidding rule."""
    pass


class OwnerNotVerified(AuctionError):
    """Raised when an unverified team owner tries to take part."""
    status = 403


def new_auction_state() -> Dict:
    return {'status': 'NOT_STARTED', 'rounds': [], 'bids': []}


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _now() -> str:
    return datetime.now().isoformat()


def distribute_players(player_ids: List[str], round_count: int,
                       rng: Optional[random.Random] = None) -> List[List[str]]:
    """Shuffle players and split them into rounds of ceil(n / round_count)."""
    rng = rng or random.Random()
    if round_count < 1:
        raise AuctionStateError('Round count must be at least 1')
    shuffled = list(player_ids)
    rng.shuffle(shuffled)
    if not shuffled:
        return []
    per_round = math.ceil(len(shuffled) / round_count)
    return [shuffled[i:i + per_round] for i in range(0, len(shuffled), per_round)]


def budget_warning(remaining_after_bid: int, players_left: int, min_bid: int) -> Optional[str]:
    """Warn when the average left per still-needed player is close to the minimum."""
    if players_left <= 0:
        return None
    average = remaining_after_bid // players_left
    if average < min_bid * BUDGET_WARNING_FACTOR:
        return (f"Warning: If you win this bid, you'll have {remaining_after_bid} points "
                f"for {players_left} players (avg: {average} points/player)")
    return None


def owner_statistics(owner: Dict, players: List[Dict]) -> Dict:
    """Spending summary for one team owner's dashboard."""
    my_players = [p for p in players if p.get('auctionStatus') == 'SOLD' and p.get('teamOwnerId') == owner['id']]
    total_spent = sum(p.get('soldPrice') or 0 for p in my_players)
    budget = owner.get('totalBudget') or 0
    return {
        'totalPlayers': len(my_players),
        'totalSpent': total_spent,
        'averagePrice': round(total_spent / len(my_players), 2) if my_players else 0,
        'positionBreakdown': dict(Counter(p.get('position') for p in my_players)),
        'playersNeeded': max(0, (owner.get('minPlayersNeeded') or 0) - len(my_players)),
        'remainingBudget': owner.get('remainingBudget', 0),
        'budgetUtilization': round(total_spent / budget * 100, 2) if budget else 0,
    }


def recent_sales(players: List[Dict], limit: int = RECENT_SALES_LIMIT) -> List[Dict]:
    sold = [p for p in players if p.get('auctionStatus') == 'SOLD']
    sold.sort(key=lambda p: p.get('soldAt') or '', reverse=True)
    return sold[:limit]


class Auction:
    """Auction state machine over a tournament's loaded records."""

    def __init__(self, tournament: Dict, state: Dict, players: List[Dict], owners: List[Dict]):
        self.tournament = tournament
        self.state = state
        self.state.setdefault('status', 'NOT_STARTED')
        self.state.setdefault('rounds', [])
        self.state.setdefault('bids', [])
        self.players = players
        self.owners = owners

    def __repr__(self):
        return f"Auction(tournament={self.tournament.get('id')}, status={self.status}, rounds={len(self.rounds)})"

    @property
    def status(self) -> str:
        return self.state['status']

    @property
    def rounds(self) -> List[Dict]:
        return self.state['rounds']

    @property
    def bids(self) -> List[Dict]:
        return self.state['bids']

    @property
    def min_bid(self) -> int:
        return self.tournament.get('minPlayerPoints') or DEFAULT_MIN_PLAYER_POINTS

    # Lookups

    def get_player(self, player_id: str) -> Dict:
        player = next((p for p in self.players if p['id'] == player_id), None)
        if not player:
            raise AuctionNotFound('Player not found')
        return player

    def get_owner(self, owner_id: str) -> Dict:
        owner = next((o for o in self.owners if o['id'] == owner_id), None)
        if not owner:
            raise AuctionNotFound('Team owner not found')
        return owner

    def get_round(self, round_id: str) -> Dict:
        found = next((r for r in self.rounds if r['id'] == round_id), None)
        if not found:
            raise AuctionNotFound('Round not found')
        return found

    def active_round(self) -> Optional[Dict]:
        return next((r for r in self.rounds if r['status'] == 'ACTIVE'), None)

    def active_bids(self, player_id: str) -> List[Dict]:
        """ACTIVE bids on a player, highest first."""
        bids = [b for b in self.bids if b['playerId'] == player_id and b['status'] == 'ACTIVE']
        return sorted(bids, key=lambda b: b['bidAmount'], reverse=True)

    def bid_history(self, player_id: str) -> List[Dict]:
        """Every bid on a player, newest first."""
        bids = [b for b in self.bids if b['playerId'] == player_id]
        return sorted(bids, key=lambda b: b['createdAt'], reverse=True)

    def verified_owners(self) -> List[Dict]:
        owners = [o for o in self.owners if o.get('verified')]
        return sorted(owners, key=lambda o: o.get('teamIndex') or 0)

    def live_view(self) -> Dict:
        """Snapshot served to the live auction screen."""
        current_round = self.active_round()
        round_view = None
        if current_round:
            round_view = dict(current_round)
            player_id = current_round.get('currentPlayerId')
            round_view['currentPlayer'] = None
            round_view['bids'] = []
            if player_id:
                round_view['currentPlayer'] = next((p for p in self.players if p['id'] == player_id), None)
                round_view['bids'] = self.active_bids(player_id)
        return {
            'auctionStatus': self.status,
            'auctionLive': self.status == 'ONGOING',
            'teamOwners': self.verified_owners(),
            'currentRound': round_view,
            'rounds': sorted(self.rounds, key=lambda r: r['roundNumber']),
        }

    # Auction lifecycle

    def start(self):
        if self.status == 'COMPLETED':
            raise AuctionStateError('Auction has already ended')
        self.state['status'] = 'ONGOING'
        self.state.setdefault('startedAt', _now())

    def pause(self):
        if self.status != 'ONGOING':
            raise AuctionStateError('Auction is not running')
        self.state['status'] = 'PAUSED'

    def resume(self):
        if self.status != 'PAUSED':
            raise AuctionStateError('Auction is not paused')
        self.state['status'] = 'ONGOING'

    def end(self):
        for r in self.rounds:
            if r['status'] != 'COMPLETED':
                r['status'] = 'COMPLETED'
                r['currentPlayerId'] = None
                r['endedAt'] = _now()
        self.state['status'] = 'COMPLETED'
        self.state['endedAt'] = _now()

    # Rounds

    def _next_round_number(self) -> int:
        return max((r['roundNumber'] for r in self.rounds), default=0) + 1

    def create_round(self, name: Optional[str] = None, player_ids: Optional[List[str]] = None) -> Dict:
        number = self._next_round_number()
        for player_id in player_ids or []:
            self.get_player(player_id)
        auction_round = {
            'id': _new_id(),
            'roundNumber': number,
            'name': name or f"Round {number}",
            'status': 'PENDING',
            'playerIds': list(player_ids or []),
            'currentPlayerId': None,
            'createdAt': _now(),
        }
        self.rounds.append(auction_round)
        return auction_round

    def bulk_create_rounds(self, entries: List[Dict]) -> List[Dict]:
        """Create several rounds in order, numbered after the existing ones."""
        return [self.create_round(entry.get('name'), entry.get('playerIds')) for entry in entries]

    def auto_create_rounds(self, round_count: int, rng: Optional[random.Random] = None) -> List[Dict]:
        """Spread every biddable player not yet in a round across new rounds."""
        assigned = {pid for r in self.rounds if r['status'] != 'COMPLETED' for pid in r['playerIds']}
        pool = [p['id'] for p in self.players
                if p.get('auctionStatus') in BIDDABLE_STATUSES and p['id'] not in assigned]
        if not pool:
            raise AuctionStateError('No available players to distribute')
        return [self.create_round(player_ids=chunk) for chunk in distribute_players(pool, round_count, rng)]

    def start_round(self, round_id: str) -> Dict:
        target = self.get_round(round_id)
        if target['status'] == 'COMPLETED':
            raise AuctionStateError('Round already completed')
        for r in self.rounds:
            if r['status'] == 'ACTIVE' and r is not target:
                r['status'] = 'COMPLETED'
                r['currentPlayerId'] = None
                r['endedAt'] = _now()
        target['status'] = 'ACTIVE'
        target['startedAt'] = _now()
        return target

    def assign_players_to_round(self, round_id: str, player_ids: List[str]) -> Dict:
        target = self.get_round(round_id)
        for player_id in player_ids:
            self.get_player(player_id)
            if player_id not in target['playerIds']:
                target['playerIds'].append(player_id)
        return target

    # Current player

    def set_current_player(self, player_id: str) -> Dict:
        """Put a player on the block, activating a round if none is running.

        The latest round is activated, or a "General Round" is created when
        no round exists yet.
        """
        player = self.get_player(player_id)
        if player.get('auctionStatus') not in BIDDABLE_STATUSES:
            raise AuctionStateError(f"Player is {player.get('auctionStatus')} and cannot be auctioned")
        current_round = self.active_round()
        if not current_round:
            open_rounds = [r for r in self.rounds if r['status'] != 'COMPLETED']
            if open_rounds:
                current_round = max(open_rounds, key=lambda r: r['roundNumber'])
            else:
                current_round = self.create_round('General Round')
            current_round['status'] = 'ACTIVE'
            current_round['startedAt'] = _now()
        if player_id not in current_round['playerIds']:
            current_round['playerIds'].append(player_id)
        current_round['currentPlayerId'] = player_id
        return current_round

    def set_current(self, player_id: str) -> Dict:
        """Put a player on the block in the active round, resetting old bids on them."""
        player = self.get_player(player_id)
        current_round = self.active_round()
        if not current_round:
            raise AuctionStateError('No active auction round')
        if player.get('auctionStatus') not in BIDDABLE_STATUSES:
            raise AuctionStateError(f"Player is {player.get('auctionStatus')} and cannot be auctioned")
        for bid in self.active_bids(player_id):
            bid['status'] = 'RESET'
            bid['isWinning'] = False
        if player_id not in current_round['playerIds']:
            current_round['playerIds'].append(player_id)
        current_round['currentPlayerId'] = player_id
        return current_round

    # Bidding

    def place_bid(self, owner_id: str, player_id: str, amount: int) -> Tuple[Dict, Optional[str]]:
        """Validate and record a bid. Returns (bid, budget_warning)."""
        owner = self.get_owner(owner_id)
        if not owner.get('verified'):
            raise OwnerNotVerified('Team owner is not verified')
        if self.status != 'ONGOING':
            raise AuctionStateError('Auction is not live')

        min_bid = self.min_bid
        if amount < min_bid:
            raise BidRejected(f"Minimum bid amount is {min_bid} points")
        remaining = owner.get('remainingBudget', 0)
        if amount > remaining:
            raise BidRejected('Insufficient budget for this bid')

        players_still_needed = (owner.get('minPlayersNeeded') or 0) - (owner.get('currentPlayers') or 0) - 1
        reserve = players_still_needed * min_bid
        if players_still_needed > 0 and remaining - amount < reserve:
            max_bid = remaining - reserve
            raise BidRejected(
                'Bid too high',
                warning=f"You need {players_still_needed} more players. Maximum bid allowed: {max_bid} points",
                maxBid=max_bid,
                playersRemaining=players_still_needed,
            )

        current_round = self.active_round()
        if not current_round:
            raise BidRejected('No active auction round')
        if current_round.get('currentPlayerId') != player_id:
            raise BidRejected('This player is not currently being auctioned')

        player = self.get_player(player_id)
        active = self.active_bids(player_id)
        if active:
            highest = active[0]['bidAmount']
            minimum = max(min_bid, highest + min_bid)
            if amount <= highest:
                raise BidRejected(
                    f"Bid must be higher than current bid of {highest} points",
                    minimumBid=minimum,
                    currentHighest=highest,
                )
            # Every raise is at least one minimum increment
            if amount < minimum:
                raise BidRejected(f"Bid amount too low. Minimum required: {minimum} points",
                                  minimumBid=minimum, currentHighest=highest)
        else:
            minimum = max(min_bid, player.get('basePrice') or 0)
            if amount < minimum:
                raise BidRejected(f"Bid amount too low. Minimum required: {minimum} points", minimumBid=minimum)

        for previous in active:
            previous['status'] = 'OUTBID'
            previous['isWinning'] = False

        bid = {
            'id': _new_id(),
            'playerId': player_id,
            'playerName': player.get('name'),
            'teamOwnerId': owner_id,
            'teamName': owner.get('teamName'),
            'roundId': current_round['id'],
            'bidAmount': amount,
            'status': 'ACTIVE',
            'isWinning': True,
            'createdAt': _now(),
        }
        self.bids.append(bid)
        return bid, budget_warning(remaining - amount, players_still_needed, min_bid)

    def winning_bid(self, player_id: str) -> Optional[Dict]:
        active = self.active_bids(player_id)
        return active[0] if active else None

    # Sales

    def _close_bids(self, player_id: str, winner: Optional[Dict] = None):
        for bid in self.bids:
            if bid['playerId'] != player_id or bid is winner:
                continue
            if bid['status'] in ('ACTIVE', 'WINNING'):
                bid['status'] = 'CLOSED'
                bid['isWinning'] = False

    def _complete_sale(self, player: Dict, owner: Dict, amount: int) -> Dict:
        if player.get('auctionStatus') == 'SOLD':
            raise AuctionStateError('Player already sold')
        if amount < 0:
            raise BidRejected('Sale amount cannot be negative')
        if amount > owner.get('remainingBudget', 0):
            raise BidRejected('Insufficient budget', remainingBudget=owner.get('remainingBudget', 0))
        max_players = self.tournament.get('maxPlayersPerTeam') or DEFAULT_MAX_PLAYERS_PER_TEAM
        if (owner.get('currentPlayers') or 0) >= max_players:
            raise BidRejected(f"{owner.get('teamName')} already has {max_players} players")

        winner = next((b for b in self.active_bids(player['id'])
                       if b['teamOwnerId'] == owner['id'] and b['bidAmount'] == amount), None)
        if not winner:
            winner = {
                'id': _new_id(),
                'playerId': player['id'],
                'playerName': player.get('name'),
                'teamOwnerId': owner['id'],
                'teamName': owner.get('teamName'),
                'roundId': (self.active_round() or {}).get('id'),
                'bidAmount': amount,
                'createdAt': _now(),
            }
            self.bids.append(winner)
        winner['status'] = 'WINNING'
        winner['isWinning'] = True
        self._close_bids(player['id'], winner)

        owner['remainingBudget'] = owner.get('remainingBudget', 0) - amount
        owner['currentPlayers'] = (owner.get('currentPlayers') or 0) + 1
        player['auctionStatus'] = 'SOLD'
        player['soldPrice'] = amount
        player['teamOwnerId'] = owner['id']
        player['soldTo'] = owner.get('teamName')
        player['soldAt'] = _now()
        return winner

    def _clear_current(self, player_id: str):
        for r in self.rounds:
            if r.get('currentPlayerId') == player_id:
                r['currentPlayerId'] = None

    def sell_player(self, player_id: str, owner_id: str, amount: int) -> Dict:
        """Sell the player on the block to a team and clear the block."""
        player = self.get_player(player_id)
        owner = self.get_owner(owner_id)
        self._complete_sale(player, owner, amount)
        self._clear_current(player_id)
        return player

    def sell(self, player_id: str, owner_id: Optional[str] = None, amount: Optional[int] = None) -> Dict:
        """Sell to the winning bidder, or to an explicit team at an explicit price."""
        player = self.get_player(player_id)
        if owner_id is None or amount is None:
            winner = self.winning_bid(player_id)
            if not winner:
                raise AuctionStateError('No bids placed on this player')
            owner_id = owner_id or winner['teamOwnerId']
            amount = amount if amount is not None else winner['bidAmount']
        self._complete_sale(player, self.get_owner(owner_id), amount)
        self._clear_current(player_id)
        return player

    def sell_to_team(self, player_id: str, owner_id: str, amount: int) -> Tuple[Dict, Optional[Dict]]:
        """Direct sale by the auctioneer, then move the block to the next player.

        Returns (sold player, next player or None).
        """
        player = self.get_player(player_id)
        if player.get('auctionStatus') != 'AVAILABLE':
            raise AuctionStateError('Player is not available for sale')
        self._complete_sale(player, self.get_owner(owner_id), amount)

        next_player = None
        current_round = self.active_round()
        if current_round and current_round.get('currentPlayerId') == player_id:
            candidates = [p for p in self.players
                          if p['id'] in current_round['playerIds'] and p['id'] != player_id
                          and p.get('auctionStatus') == 'AVAILABLE']
            candidates.sort(key=lambda p: p.get('name', ''))
            next_player = candidates[0] if candidates else None
            current_round['currentPlayerId'] = next_player['id'] if next_player else None
        else:
            self._clear_current(player_id)
        return player, next_player

    def mark_unsold(self, player_id: str) -> Dict:
        player = self.get_player(player_id)
        if player.get('auctionStatus') == 'SOLD':
            raise AuctionStateError('Player already sold')
        player['auctionStatus'] = 'UNSOLD'
        self._close_bids(player_id)
        self._clear_current(player_id)
        return player

    def reselect_player(self, player_id: str) -> Dict:
        """Bring an unsold player back into the pool."""
        player = self.get_player(player_id)
        if player.get('auctionStatus') != 'UNSOLD':
            raise AuctionStateError('Only unsold players can be reselected')
        player['auctionStatus'] = 'AVAILABLE'
        return player


def owner_dashboard(owner: Dict, players: List[Dict], auction_status: str) -> Dict:
    my_players = [p for p in players if p.get('auctionStatus') == 'SOLD' and p.get('teamOwnerId') == owner['id']]
    return {
        'owner': owner,
        'myPlayers': sorted(my_players, key=lambda p: p.get('soldAt') or '', reverse=True),
        'recentSales': recent_sales(players),
        'statistics': owner_statistics(owner, players),
        'auctionStatus': auction_status,
    }


def initial_owner_budget(tournament: Dict) -> int:
    return tournament.get('auctionBudget') or DEFAULT_AUCTION_BUDGET
