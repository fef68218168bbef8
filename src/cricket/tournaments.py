"""
Tournament records: defaults, field coercion and validation.
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from cricket.models import (
    TOURNAMENT_FORMATS,
    COMPETITION_TYPES,
    TOURNAMENT_STATUSES,
    ENTRY_FEE_TYPES,
    DEFAULT_AUCTION_BUDGET,
    DEFAULT_MIN_PLAYER_POINTS,
    DEFAULT_OWNER_PARTICIPATION_COST,
    DEFAULT_MIN_PLAYERS_PER_TEAM,
    DEFAULT_MAX_PLAYERS_PER_TEAM,
    DEFAULT_AUCTION_TEAM_COUNT,
    DEFAULT_MAX_TEAMS,
    DEFAULT_VENUE,
    is_auction_based,
)

# field -> kind, used to coerce form and JSON input alike
FIELD_KINDS = {
    'name': 'str',
    'description': 'str',
    'format': 'str',
    'competitionType': 'str',
    'customFormat': 'str',
    'venue': 'str',
    'venueAddress': 'str',
    'customMapsLink': 'str',
    'startDate': 'date',
    'endDate': 'date',
    'registrationDeadline': 'date',
    'maxTeams': 'int',
    'entryFee': 'float',
    'totalPrizePool': 'float',
    'overs': 'int',
    'status': 'str',
    'rules': 'str',
    'organizers': 'list',
    'winners': 'list',
    'otherPrizes': 'list',
    'autoArrangeMatches': 'bool',
    'groupSize': 'int',
    'qualifiersPerGroup': 'int',
    'matchDuration': 'int',
    'breakBetweenMatches': 'int',
    'maxMatchesPerDay': 'int',
    'preferredMatchTimes': 'str',
    'teamSize': 'int',
    'substitutes': 'int',
    'auctionDate': 'date',
    'auctionBudget': 'int',
    'auctionTeamCount': 'int',
    'minPlayerPoints': 'int',
    'ownerParticipationCost': 'int',
    'playerEntryFee': 'float',
    'teamEntryFee': 'float',
    'minPlayersPerTeam': 'int',
    'maxPlayersPerTeam': 'int',
    'requireTeamOwners': 'bool',
    'ownerVerificationRequired': 'bool',
    'entryFeeType': 'str',
    'ownershipMode': 'str',
    'maxTeamsPerOwner': 'int',
}

AUCTION_FIELDS = (
    'auctionDate', 'auctionBudget', 'auctionTeamCount', 'minPlayerPoints',
    'ownerParticipationCost', 'playerEntryFee', 'teamEntryFee',
)


def _coerce(kind: str, value):
    if value is None or value == '':
        return None
    if kind == 'int':
        return int(value)
    if kind == 'float':
        return float(value)
    if kind == 'bool':
        if isinstance(value, str):
            return value.lower() in ('true', '1', 'yes', 'on')
        return bool(value)
    if kind == 'date':
        text = str(value).strip()
        datetime.fromisoformat(text)
        return text
    if kind == 'list':
        if isinstance(value, str):
            return [item.strip() for item in value.split(',') if item.strip()]
        return list(value)
    return str(value).strip()


def coerce_fields(data: Dict, only_present: bool = False) -> Tuple[Dict, List[str]]:
    """Coerce known fields; returns (values, errors). Unknown keys are dropped."""
    values, errors = {}, []
    for field, kind in FIELD_KINDS.items():
        if only_present and field not in data:
            continue
        try:
            values[field] = _coerce(kind, data.get(field))
        except (TypeError, ValueError):
            errors.append(f'{field}: Invalid {kind} value')
    return values, errors


def _check_enums(values: Dict) -> List[str]:
    errors = []
    if values.get('format') and values['format'] not in TOURNAMENT_FORMATS:
        errors.append('format: Invalid format')
    if values.get('competitionType') and values['competitionType'] not in COMPETITION_TYPES:
        errors.append('competitionType: Invalid competition type')
    if values.get('status') and values['status'] not in TOURNAMENT_STATUSES:
        errors.append('status: Invalid status')
    if values.get('entryFeeType') and values['entryFeeType'] not in ENTRY_FEE_TYPES:
        errors.append('entryFeeType: Invalid entry fee type')
    if values.get('startDate') and values.get('endDate') and values['endDate'][:10] < values['startDate'][:10]:
        errors.append('endDate: End date must not be before start date')
    return errors


def build_tournament(data: Dict, tournament_id: str) -> Tuple[Optional[Dict], List[str]]:
    """Create a new tournament record from request data."""
    values, errors = coerce_fields(data)
    if not values.get('name') or not values.get('startDate') or not values.get('endDate'):
        errors.append('Missing required fields: name, startDate and endDate')
    if not values.get('organizers'):
        errors.append('At least one organizer is required')
    errors.extend(_check_enums(values))
    if errors:
        return None, errors

    competition_type = values.get('competitionType') or 'LEAGUE'
    auction = is_auction_based(competition_type)
    now = datetime.now().isoformat()
    tournament = dict(values)
    tournament.update({
        'id': tournament_id,
        'format': values.get('format') or 'T20',
        'competitionType': competition_type,
        'isAuctionBased': auction,
        'customFormat': values.get('customFormat') if 'CUSTOM' in (competition_type, values.get('format')) else None,
        'venue': values.get('venue') or DEFAULT_VENUE,
        'maxTeams': values.get('maxTeams') or DEFAULT_MAX_TEAMS,
        'entryFee': values.get('entryFee') or 0,
        'totalPrizePool': values.get('totalPrizePool') or 0,
        'status': values.get('status') or 'UPCOMING',
        'winners': values.get('winners') or [],
        'otherPrizes': values.get('otherPrizes') or [],
        'autoArrangeMatches': bool(values.get('autoArrangeMatches')),
        'teamSize': values.get('teamSize') or DEFAULT_MIN_PLAYERS_PER_TEAM,
        'substitutes': values.get('substitutes') or 0,
        'minPlayersPerTeam': values.get('minPlayersPerTeam') or DEFAULT_MIN_PLAYERS_PER_TEAM,
        'maxPlayersPerTeam': values.get('maxPlayersPerTeam') or DEFAULT_MAX_PLAYERS_PER_TEAM,
        'ownershipMode': values.get('ownershipMode') or 'REGISTRATION',
        'maxTeamsPerOwner': values.get('maxTeamsPerOwner') or 1,
        'createdAt': now,
        'updatedAt': now,
    })
    if auction:
        tournament.update({
            'auctionBudget': values.get('auctionBudget') or DEFAULT_AUCTION_BUDGET,
            'auctionTeamCount': values.get('auctionTeamCount') or DEFAULT_AUCTION_TEAM_COUNT,
            'minPlayerPoints': values.get('minPlayerPoints') or DEFAULT_MIN_PLAYER_POINTS,
            'ownerParticipationCost': values.get('ownerParticipationCost') or DEFAULT_OWNER_PARTICIPATION_COST,
            'playerEntryFee': values.get('playerEntryFee') or 0,
            'teamEntryFee': values.get('teamEntryFee') or 0,
            'requireTeamOwners': values.get('requireTeamOwners') is not False,
            'ownerVerificationRequired': values.get('ownerVerificationRequired') is not False,
            'entryFeeType': values.get('entryFeeType') or 'BOTH',
            'auctionStatus': 'NOT_STARTED',
        })
    else:
        for field in AUCTION_FIELDS:
            tournament[field] = None
        tournament.update({
            'requireTeamOwners': False,
            'ownerVerificationRequired': False,
            'entryFeeType': values.get('entryFeeType') or 'TEAM',
            'auctionStatus': None,
        })
    return tournament, []


def update_tournament(tournament: Dict, data: Dict) -> List[str]:
    """Apply an update in place. Only keys present in ``data`` change."""
    values, errors = coerce_fields(data, only_present=True)
    merged = dict(tournament)
    merged.update(values)
    for field in ('name', 'competitionType', 'startDate', 'venue'):
        if not merged.get(field):
            errors.append(f'{field}: Required')
    errors.extend(_check_enums(merged))
    if errors:
        return errors

    tournament.update(values)
    auction = is_auction_based(tournament['competitionType'])
    if auction and not tournament.get('isAuctionBased'):
        tournament.setdefault('auctionStatus', None)
        tournament['auctionStatus'] = tournament['auctionStatus'] or 'NOT_STARTED'
        tournament['auctionBudget'] = tournament.get('auctionBudget') or DEFAULT_AUCTION_BUDGET
        tournament['auctionTeamCount'] = tournament.get('auctionTeamCount') or DEFAULT_AUCTION_TEAM_COUNT
        tournament['minPlayerPoints'] = tournament.get('minPlayerPoints') or DEFAULT_MIN_PLAYER_POINTS
    tournament['isAuctionBased'] = auction
    tournament['updatedAt'] = datetime.now().isoformat()
    return []


def public_summary(tournament: Dict) -> Dict:
    """Auction settings excerpt shown on the live auction screen."""
    keys = ('id', 'name', 'status', 'auctionStatus', 'auctionDate', 'auctionBudget', 'auctionTeamCount',
            'minPlayerPoints', 'minPlayersPerTeam', 'maxPlayersPerTeam', 'competitionType')
    return {key: tournament.get(key) for key in keys}
