"""
Validation and workflow rules for team registrations, auction player
sign-ups and team owner applications.

Validators return ``(cleaned, errors)``; a non-empty ``errors`` list holds
``"field: message"`` strings suitable for a 400 response.
"""
import re
from datetime import datetime
from typing import List, Dict, Optional, Tuple

from cricket.models import (
    PLAYER_POSITIONS,
    EXPERIENCE_LEVELS,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    REGISTRATION_TYPES,
    DEFAULT_AUCTION_TEAM_COUNT,
)

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def _text(data: Dict, key: str) -> str:
    value = data.get(key)
    return str(value).strip() if value is not None else ''


def is_valid_email(email: str) -> bool:
    return bool(email) and bool(EMAIL_RE.match(email))


def digits(phone: str) -> str:
    return re.sub(r'\D', '', phone or '')


def _parse_when(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if len(text) == 10:
        # Date-only deadlines run to the end of that day
        parsed = parsed.replace(hour=23, minute=59, second=59)
    return parsed


def deadline_passed(tournament: Dict, now: Optional[datetime] = None) -> bool:
    deadline = _parse_when(tournament.get('registrationDeadline'))
    if not deadline:
        return False
    now = now or datetime.now()
    if deadline.tzinfo is not None:
        deadline = deadline.replace(tzinfo=None)
    return now > deadline


def validate_team_registration(data: Dict) -> Tuple[Dict, List[str]]:
    """Validate a public or admin team registration payload."""
    errors = []
    cleaned = {
        'teamName': _text(data, 'teamName'),
        'captainName': _text(data, 'captainName'),
        'captainPhone': _text(data, 'captainPhone'),
        'captainEmail': _text(data, 'captainEmail').lower(),
        'homeGround': _text(data, 'homeGround') or None,
        'description': _text(data, 'description') or None,
        'specialRequests': _text(data, 'specialRequests') or None,
        'paymentMethod': _text(data, 'paymentMethod') or None,
        'registrationType': _text(data, 'registrationType') or 'PUBLIC',
        'players': [],
    }
    if len(cleaned['teamName']) < 2:
        errors.append('teamName: Team name must be at least 2 characters')
    if len(cleaned['captainName']) < 2:
        errors.append('captainName: Captain name must be at least 2 characters')
    if len(digits(cleaned['captainPhone'])) < 10:
        errors.append('captainPhone: Phone number must be at least 10 digits')
    if not is_valid_email(cleaned['captainEmail']):
        errors.append('captainEmail: Invalid email address')
    if cleaned['paymentMethod'] and cleaned['paymentMethod'] not in PAYMENT_METHODS:
        errors.append(f"paymentMethod: Must be one of {', '.join(PAYMENT_METHODS)}")
    if cleaned['registrationType'] not in REGISTRATION_TYPES:
        errors.append(f"registrationType: Must be one of {', '.join(REGISTRATION_TYPES)}")

    players = data.get('players')
    if not isinstance(players, list) or not players:
        errors.append('players: At least one player is required')
        players = []
    for index, player in enumerate(players):
        if not isinstance(player, dict):
            errors.append(f'players.{index}: Invalid player')
            continue
        entry = {
            'name': _text(player, 'name'),
            'position': _text(player, 'position'),
            'experience': _text(player, 'experience'),
        }
        if len(entry['name']) < 2:
            errors.append(f'players.{index}.name: Player name must be at least 2 characters')
        if entry['position'] not in PLAYER_POSITIONS:
            errors.append(f'players.{index}.position: Invalid position')
        if entry['experience'] not in EXPERIENCE_LEVELS:
            errors.append(f'players.{index}.experience: Invalid experience level')
        cleaned['players'].append(entry)
    return cleaned, errors


def confirmed_count(registrations: List[Dict]) -> int:
    return sum(1 for r in registrations if r.get('status') == 'CONFIRMED')


def capacity_reached(tournament: Dict, registrations: List[Dict]) -> bool:
    max_teams = tournament.get('maxTeams')
    if not max_teams:
        return False
    return confirmed_count(registrations) >= max_teams


def find_duplicate_registration(registrations: List[Dict], team_name: str, email: str) -> Optional[Dict]:
    """A team is already registered when both its name and captain email match."""
    team_name = team_name.strip().lower()
    email = email.strip().lower()
    for registration in registrations:
        if (registration.get('teamName', '').lower() == team_name
                and registration.get('captainEmail', '').lower() == email):
            return registration
    return None


def registration_summary(registrations: List[Dict]) -> Dict:
    return {
        'total': len(registrations),
        'pending': sum(1 for r in registrations if r.get('status') == 'PENDING'),
        'confirmed': confirmed_count(registrations),
        'rejected': sum(1 for r in registrations if r.get('status') == 'REJECTED'),
    }


def approve_registration(registration: Dict, registrations: List[Dict], tournament: Dict,
                         approved_by: str) -> Tuple[bool, str]:
    """Confirm a pending registration if the tournament still has room."""
    if registration.get('status') != 'PENDING':
        return False, 'Only pending registrations can be approved'
    if capacity_reached(tournament, registrations):
        return False, 'Tournament has reached maximum number of teams'
    registration['status'] = 'CONFIRMED'
    registration['approvedBy'] = approved_by
    registration['approvedAt'] = datetime.now().isoformat()
    return True, 'Registration approved'


def reject_registration(registration: Dict, rejected_by: str, reason: Optional[str] = None) -> Tuple[bool, str]:
    if registration.get('status') != 'PENDING':
        return False, 'Only pending registrations can be rejected'
    registration['status'] = 'REJECTED'
    registration['rejectedBy'] = rejected_by
    registration['rejectedAt'] = datetime.now().isoformat()
    registration['rejectionReason'] = reason or None
    return True, 'Registration rejected'


def update_payment(registration: Dict, payment_status: Optional[str], payment_method: Optional[str]) -> Tuple[bool, str]:
    if not payment_status and not payment_method:
        return False, 'paymentStatus or paymentMethod is required'
    if payment_status and payment_status not in PAYMENT_STATUSES:
        return False, f"Invalid payment status. Must be one of {', '.join(PAYMENT_STATUSES)}"
    if payment_method and payment_method not in PAYMENT_METHODS:
        return False, f"Invalid payment method. Must be one of {', '.join(PAYMENT_METHODS)}"
    if payment_status:
        registration['paymentStatus'] = payment_status
    if payment_method:
        registration['paymentMethod'] = payment_method
    return True, 'Payment updated'


# Auction players

def validate_auction_player(data: Dict) -> Tuple[Dict, List[str]]:
    errors = []
    cleaned = {
        'name': _text(data, 'name'),
        'phone': _text(data, 'phone'),
        'email': _text(data, 'email').lower(),
        'position': _text(data, 'position'),
        'experience': _text(data, 'experience') or 'INTERMEDIATE',
        'age': data.get('age'),
        'city': _text(data, 'city') or None,
        'fatherName': _text(data, 'fatherName') or None,
        'battingStyle': _text(data, 'battingStyle') or None,
        'bowlingStyle': _text(data, 'bowlingStyle') or None,
        'profileImageUrl': _text(data, 'profileImageUrl') or None,
    }
    for key in ('name', 'phone', 'email', 'position'):
        if not cleaned[key]:
            errors.append(f'{key}: Required')
    if cleaned['email'] and not is_valid_email(cleaned['email']):
        errors.append('email: Invalid email address')
    if cleaned['position'] and cleaned['position'] not in PLAYER_POSITIONS:
        errors.append('position: Invalid position')
    if cleaned['experience'] not in EXPERIENCE_LEVELS:
        errors.append('experience: Invalid experience level')
    try:
        cleaned['basePrice'] = int(data.get('basePrice') or 0)
    except (TypeError, ValueError):
        errors.append('basePrice: Must be a number')
    return cleaned, errors


def find_registered_player(players: List[Dict], phone: str, email: str) -> Optional[Dict]:
    """Players are unique per tournament by phone or email."""
    phone_digits = digits(phone)
    email = (email or '').lower()
    for player in players:
        if phone_digits and digits(player.get('phone')) == phone_digits:
            return player
        if email and (player.get('email') or '').lower() == email:
            return player
    return None


def find_similar_player(players: List[Dict], name: str, phone: str, email: Optional[str] = None) -> Optional[Dict]:
    """Looser lookup used before sign-up: same phone, or a containing name with the same phone or email."""
    name = (name or '').strip().lower()
    phone_digits = digits(phone)
    email = (email or '').strip().lower()
    for player in players:
        same_phone = bool(phone_digits) and digits(player.get('phone')) == phone_digits
        same_email = bool(email) and (player.get('email') or '').lower() == email
        if same_phone:
            return player
        if name and name in (player.get('name') or '').lower() and same_email:
            return player
    return None


# Team owners

def validate_team_owner(data: Dict) -> Tuple[Dict, List[str]]:
    errors = []
    cleaned = {
        'ownerName': _text(data, 'ownerName'),
        'ownerPhone': _text(data, 'ownerPhone'),
        'ownerEmail': _text(data, 'ownerEmail').lower(),
        'teamName': _text(data, 'teamName'),
        'businessName': _text(data, 'businessName') or None,
        'city': _text(data, 'city') or None,
        'experience': _text(data, 'experience') or None,
    }
    for key in ('ownerName', 'ownerPhone', 'ownerEmail', 'teamName'):
        if not cleaned[key]:
            errors.append(f'{key}: Required')
    if cleaned['ownerEmail'] and not is_valid_email(cleaned['ownerEmail']):
        errors.append('ownerEmail: Invalid email address')
    if cleaned['ownerPhone'] and len(digits(cleaned['ownerPhone'])) < 10:
        errors.append('ownerPhone: Phone number must be at least 10 digits')
    return cleaned, errors


def owner_registration_error(tournament: Dict, owners: List[Dict], cleaned: Dict) -> Optional[Tuple[str, int]]:
    """Return (message, status) when a team owner may not register, else None."""
    if tournament.get('status') != 'REGISTRATION_OPEN':
        return 'Team owner registration is not open for this tournament', 400
    limit = tournament.get('auctionTeamCount') or DEFAULT_AUCTION_TEAM_COUNT
    if len(owners) >= limit:
        return f'Maximum number of teams ({limit}) already registered', 400
    phone_digits = digits(cleaned['ownerPhone'])
    for owner in owners:
        if digits(owner.get('ownerPhone')) == phone_digits or owner.get('ownerEmail', '').lower() == cleaned['ownerEmail']:
            return 'A team owner with this phone or email is already registered', 409
    for owner in owners:
        if owner.get('teamName', '').lower() == cleaned['teamName'].lower():
            return 'Team name is already taken', 409
    return None


def next_team_index(owners: List[Dict]) -> int:
    return max((o.get('teamIndex') or 0 for o in owners), default=0) + 1
