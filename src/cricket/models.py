"""
Record vocabularies and small value classes shared by the cricket service.
"""

TOURNAMENT_FORMATS = ('T10', 'T12', 'T15', 'T20', 'T30', 'ODI', 'TEST', 'LEAGUE', 'KNOCKOUT', 'CUSTOM')

AUCTION_COMPETITION_TYPES = (
    'AUCTION_BASED_FIXED_TEAMS',
    'AUCTION_BASED_GROUPS',
    'AUCTION_LEAGUE',
    'AUCTION_KNOCKOUT',
)
COMPETITION_TYPES = (
    'LEAGUE', 'ROUND_ROBIN', 'KNOCKOUT', 'GROUP_KNOCKOUT',
    'VILLAGE_CHAMPIONSHIP', 'INTER_VILLAGE', 'CUSTOM',
) + AUCTION_COMPETITION_TYPES

TOURNAMENT_STATUSES = ('UPCOMING', 'REGISTRATION_OPEN', 'REGISTRATION_CLOSED', 'ONGOING', 'COMPLETED', 'CANCELLED')

REGISTRATION_STATUSES = ('PENDING', 'CONFIRMED', 'REJECTED', 'CANCELLED', 'WAITLISTED')
REGISTRATION_TYPES = ('PUBLIC', 'ADMIN')
PAYMENT_STATUSES = ('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED', 'PARTIAL')
PAYMENT_METHODS = ('CASH', 'UPI', 'CARD', 'BANK_TRANSFER', 'CHEQUE', 'ONLINE', 'ADMIN')

PLAYER_POSITIONS = ('BATSMAN', 'BOWLER', 'ALL_ROUNDER', 'WICKET_KEEPER')
EXPERIENCE_LEVELS = ('BEGINNER', 'INTERMEDIATE', 'ADVANCED', 'PROFESSIONAL')

MATCH_STATUSES = ('SCHEDULED', 'ONGOING', 'COMPLETED', 'CANCELLED', 'POSTPONED')
MATCH_TYPES = ('LEAGUE', 'QUALIFIER', 'QUARTER_FINAL', 'SEMI_FINAL', 'FINAL')

AUCTION_PLAYER_STATUSES = ('PENDING', 'APPROVED', 'AVAILABLE', 'SOLD', 'UNSOLD', 'REJECTED', 'MOVED_TO_PLAYER_TABLE')
ENTRY_FEE_TYPES = ('TEAM', 'PLAYER', 'BOTH')

USER_ROLES = ('ADMIN', 'SUPERADMIN')

DEFAULT_AUCTION_BUDGET = 50000
DEFAULT_MIN_PLAYER_POINTS = 500
DEFAULT_OWNER_PARTICIPATION_COST = 500
DEFAULT_MIN_PLAYERS_PER_TEAM = 11
DEFAULT_MAX_PLAYERS_PER_TEAM = 15
DEFAULT_AUCTION_TEAM_COUNT = 8
DEFAULT_MAX_TEAMS = 16
DEFAULT_VENUE = 'Tunda Cricket Ground'


def is_auction_based(competition_type) -> bool:
    """Whether a competition type runs a player auction."""
    return competition_type in AUCTION_COMPETITION_TYPES


class Team:
    def __init__(self, id, name, attributes=None):
        self.id = id
        self.name = name
        self.attributes = attributes if attributes else {}

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name}, attributes={self.attributes})"


class Slot:
    def __init__(self, date, time):
        self.date = date
        self.time = time  # "HH:MM"

    def isoformat(self):
        return f"{self.date.isoformat()}T{self.time}:00"

    def __repr__(self):
        return f"Slot(date={self.date}, time={self.time})"
