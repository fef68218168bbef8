"""
Flask web application for Cricket Tournament Manager.
"""
import os
import hmac
import io
import re
import shutil
import secrets
import time
import uuid
import zipfile
import yaml
from datetime import datetime, timedelta
from functools import wraps
from filelock import FileLock
from flask import Flask, request, jsonify, Response, stream_with_context, send_file, session, g
from werkzeug.security import generate_password_hash, check_password_hash
from cricket.models import (
    Team,
    USER_ROLES,
    PLAYER_POSITIONS,
    EXPERIENCE_LEVELS,
    MATCH_STATUSES,
    MATCH_TYPES,
    PAYMENT_METHODS,
    AUCTION_PLAYER_STATUSES,
    REGISTRATION_STATUSES,
    DEFAULT_MIN_PLAYERS_PER_TEAM,
    is_auction_based,
)
from cricket.auction import Auction, AuctionError, new_auction_state, owner_dashboard, initial_owner_budget
from cricket.fixtures import arrange_matches
from cricket.players import move_auction_players, search_keywords
from cricket.registration import (
    validate_team_registration,
    validate_auction_player,
    validate_team_owner,
    owner_registration_error,
    next_team_index,
    deadline_passed,
    capacity_reached,
    find_duplicate_registration,
    find_registered_player,
    find_similar_player,
    registration_summary,
    approve_registration,
    reject_registration,
    update_payment,
)
from cricket.tournaments import build_tournament, update_tournament, public_summary
import cricket.notifications as notify

app = Flask(__name__)


def _get_or_create_secret_key() -> bytes:
    """Get SECRET_KEY from env, or generate and persist to file."""
    env_key = os.environ.get('SECRET_KEY')
    if env_key:
        return env_key.encode() if isinstance(env_key, str) else env_key
    key_file = os.path.join(DATA_DIR, '.secret_key')
    if os.path.exists(key_file):
        with open(key_file, 'rb') as f:
            return f.read()
    key = os.urandom(24)
    os.makedirs(os.path.dirname(key_file), exist_ok=True)
    with open(key_file, 'wb') as f:
        f.write(key)
    return key


BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('CRICKET_DATA_DIR', os.path.join(BASE_DIR, 'data'))

app.secret_key = _get_or_create_secret_key()
app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(hours=24)

# Directories to skip during export
SITE_EXPORT_SKIP_DIRS = {'__pycache__'}
# File extensions to skip during export
SITE_EXPORT_SKIP_EXTS = {'.pyc', '.lock'}

# Public submissions per (ip, endpoint, tournament) per hour
RATE_LIMIT_PER_HOUR = 30
DEFAULT_PAGE_SIZE = 20
AUCTION_FILES = ('auction.yaml', 'auction_players.yaml', 'team_owners.yaml')

# Structure: {(ip, endpoint, tournament_id): [timestamp, ...]}
_rate_limit_store = {}
# One FileLock per lock path so nested use within a request re-enters
_locks = {}


def _data_lock() -> FileLock:
    """Process-wide lock guarding read-modify-write of the data directory."""
    path = os.path.join(DATA_DIR, '.lock')
    lock = _locks.get(path)
    if lock is None:
        os.makedirs(DATA_DIR, exist_ok=True)
        lock = FileLock(path, timeout=10)
        _locks[path] = lock
    return lock


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _now() -> str:
    return datetime.now().isoformat()


def _slugify(name: str) -> str:
    """Convert tournament name to filesystem-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'tournament'


def _unique_slug(name: str, existing: set) -> str:
    base = _slugify(name)
    slug = base
    counter = 2
    while slug in existing:
        slug = f'{base}-{counter}'
        counter += 1
    return slug


def _data_file(name: str) -> str:
    return os.path.join(DATA_DIR, name)


def _tournament_dir(tournament_id: str) -> str:
    """Return the data directory of one tournament."""
    if not tournament_id or '..' in tournament_id or '/' in tournament_id or '\\' in tournament_id:
        raise ValueError(f'Invalid tournament id: {tournament_id!r}')
    return os.path.join(DATA_DIR, 'tournaments', tournament_id)


def _read_yaml(path: str):
    if not os.path.exists(path):
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return None


def _write_yaml(path: str, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)


def _load_list(path: str, key: str) -> list:
    data = _read_yaml(path)
    if not data or not isinstance(data, dict):
        return []
    return data.get(key) or []


def load_users() -> list:
    """Load admin accounts from YAML."""
    return _load_list(_data_file('users.yaml'), 'users')


def save_users(users: list):
    """Save admin accounts to YAML."""
    _write_yaml(_data_file('users.yaml'), {'users': users})


def load_tournaments() -> list:
    """Load the tournament registry."""
    return _load_list(_data_file('tournaments.yaml'), 'tournaments')


def save_tournaments(tournaments: list):
    _write_yaml(_data_file('tournaments.yaml'), {'tournaments': tournaments})


def find_tournament(tournament_id: str, tournaments: list = None):
    tournaments = load_tournaments() if tournaments is None else tournaments
    return next((t for t in tournaments if t['id'] == tournament_id), None)


def load_teams() -> list:
    """Load the global team registry."""
    return _load_list(_data_file('teams.yaml'), 'teams')


def save_teams(teams: list):
    _write_yaml(_data_file('teams.yaml'), {'teams': teams})


def load_players() -> list:
    """Load the global player registry."""
    return _load_list(_data_file('players.yaml'), 'players')


def save_players(players: list):
    _write_yaml(_data_file('players.yaml'), {'players': players})


def load_notifications() -> list:
    return _load_list(_data_file('notifications.yaml'), 'notifications')


def save_notifications(notifications: list):
    _write_yaml(_data_file('notifications.yaml'), {'notifications': notifications})


def load_settings() -> dict:
    """Load global settings, filling in the payment section."""
    data = _read_yaml(_data_file('settings.yaml'))
    if not data or not isinstance(data, dict):
        data = {}
    data.setdefault('payment', {})
    return data


def save_settings(settings: dict):
    _write_yaml(_data_file('settings.yaml'), settings)


def _load_tournament_list(tournament_id: str, name: str, key: str) -> list:
    return _load_list(os.path.join(_tournament_dir(tournament_id), name), key)


def _save_tournament_list(tournament_id: str, name: str, key: str, items: list):
    _write_yaml(os.path.join(_tournament_dir(tournament_id), name), {key: items})


def load_registrations(tournament_id: str) -> list:
    """Load team registrations of a tournament."""
    registrations = _load_tournament_list(tournament_id, 'registrations.yaml', 'registrations')
    for registration in registrations:
        registration.setdefault('paymentStatus', 'PENDING')
        registration.setdefault('notes', None)
    return registrations


def save_registrations(tournament_id: str, registrations: list):
    _save_tournament_list(tournament_id, 'registrations.yaml', 'registrations', registrations)


def load_auction_players(tournament_id: str) -> list:
    return _load_tournament_list(tournament_id, 'auction_players.yaml', 'players')


def save_auction_players(tournament_id: str, players: list):
    _save_tournament_list(tournament_id, 'auction_players.yaml', 'players', players)


def load_team_owners(tournament_id: str) -> list:
    return _load_tournament_list(tournament_id, 'team_owners.yaml', 'owners')


def save_team_owners(tournament_id: str, owners: list):
    _save_tournament_list(tournament_id, 'team_owners.yaml', 'owners', owners)


def load_matches(tournament_id: str) -> list:
    return _load_tournament_list(tournament_id, 'matches.yaml', 'matches')


def save_matches(tournament_id: str, matches: list):
    _save_tournament_list(tournament_id, 'matches.yaml', 'matches', matches)


def load_payment_methods(tournament_id: str) -> list:
    return _load_tournament_list(tournament_id, 'payment_methods.yaml', 'methods')


def save_payment_methods(tournament_id: str, methods: list):
    _save_tournament_list(tournament_id, 'payment_methods.yaml', 'methods', methods)


def load_auction_state(tournament_id: str) -> dict:
    """Load auction status, rounds and bids."""
    data = _read_yaml(os.path.join(_tournament_dir(tournament_id), 'auction.yaml'))
    state = new_auction_state()
    if data and isinstance(data, dict):
        state.update(data)
    return state


def save_auction_state(tournament_id: str, state: dict):
    _write_yaml(os.path.join(_tournament_dir(tournament_id), 'auction.yaml'), state)


# Users and sessions

def create_user(username: str, password: str, email: str = None, role: str = 'ADMIN') -> tuple:
    """Create a new admin account. Returns (success, message)."""
    username = username.lower().strip()
    if not re.match(r'^[a-z0-9][a-z0-9._-]*$', username) or len(username) < 2:
        return False, 'Username must be at least 2 characters: letters, numbers, dots, hyphens, underscores.'
    if len(password) < 6:
        return False, 'Password must be at least 6 characters.'
    if role not in USER_ROLES:
        return False, f"Role must be one of {', '.join(USER_ROLES)}."
    email = (email or '').strip().lower() or None
    with _data_lock():
        users = load_users()
        if any(u['username'] == username for u in users):
            return False, 'Username already taken.'
        if email and any((u.get('email') or '') == email for u in users):
            return False, 'Email already in use.'
        users.append({
            'id': _new_id(),
            'username': username,
            'email': email,
            'password_hash': generate_password_hash(password),
            'role': role,
            'isActive': True,
            'created': _now(),
            'last_login': None,
        })
        save_users(users)
    app.logger.info(f'User created: {username} ({role})')
    return True, 'Account created successfully.'


def authenticate_user(identifier: str, password: str):
    """Check username-or-email and password of an active user. Returns the user or None."""
    identifier = (identifier or '').lower().strip()
    with _data_lock():
        users = load_users()
        for u in users:
            if identifier not in (u['username'], u.get('email')):
                continue
            if not u.get('isActive', True):
                return None
            if not check_password_hash(u['password_hash'], password or ''):
                return None
            u['last_login'] = _now()
            save_users(users)
            return u
    return None


def _public_user(user: dict) -> dict:
    return {key: value for key, value in user.items() if key != 'password_hash'}


def _seed_admin_user():
    """Create the SUPERADMIN from ADMIN_USERNAME / ADMIN_PASSWORD when no users exist."""
    username = os.environ.get('ADMIN_USERNAME')
    password = os.environ.get('ADMIN_PASSWORD')
    if not username or not password or load_users():
        return
    ok, msg = create_user(username, password, os.environ.get('ADMIN_EMAIL'), 'SUPERADMIN')
    if ok:
        app.logger.info(f'Seeded admin account {username}')
    else:
        app.logger.error(f'Could not seed admin account {username}: {msg}')


_seed_admin_user()


@app.before_request
def load_session_user():
    """Expose the signed-in admin as g.user."""
    g.user = session.get('user')
    g.role = session.get('role')


def login_required(f):
    """Reject the request with 401 unless an admin is signed in."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user' not in session:
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function


def superadmin_required(f):
    """Reject the request unless a SUPERADMIN is signed in."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user' not in session:
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        if session.get('role') != 'SUPERADMIN':
            return jsonify({'success': False, 'error': 'Super admin access required'}), 403
        return f(*args, **kwargs)
    return decorated_function


def require_backup_key(f):
    """Require valid BACKUP_API_KEY in Authorization header."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected_key = os.environ.get('BACKUP_API_KEY')
        if not expected_key:
            return jsonify({'error': 'Server not configured for backup operations'}), 500

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Missing or invalid Authorization header'}), 401

        provided_key = auth_header[7:]  # Strip "Bearer "
        if not hmac.compare_digest(expected_key, provided_key):
            return jsonify({'error': 'Invalid API key'}), 401

        return f(*args, **kwargs)
    return decorated_function


def _owner_for_token(owners: list, token: str):
    """Return the verified team owner holding this auction token, if any."""
    if not token:
        return None
    for owner in owners:
        stored = owner.get('auctionToken')
        if stored and owner.get('verified') and hmac.compare_digest(stored, token):
            return owner
    return None


def _public_owner(owner: dict) -> dict:
    return {key: value for key, value in owner.items() if key != 'auctionToken'}


def _request_token(data: dict = None) -> str:
    token = request.headers.get('X-Auction-Token', '')
    if not token and data:
        token = str(data.get('auctionToken') or '')
    return token.strip()


def check_rate_limit(ip: str, endpoint: str, tournament_id: str, max_per_hour: int = RATE_LIMIT_PER_HOUR) -> bool:
    """Check if IP has exceeded the submission limit for a tournament endpoint.

    Returns:
        True if rate limit NOT exceeded, False if exceeded
    """
    key = (ip, endpoint, tournament_id)
    now = time.time()
    cutoff = now - 3600  # 1 hour ago

    recent = [ts for ts in _rate_limit_store.get(key, []) if ts > cutoff]
    if len(recent) >= max_per_hour:
        _rate_limit_store[key] = recent
        return False

    recent.append(now)
    _rate_limit_store[key] = recent
    return True


def _rate_limited(tournament_id: str) -> bool:
    allowed = check_rate_limit(request.remote_addr or 'unknown', request.endpoint, tournament_id)
    if not allowed:
        app.logger.warning(f'Rate limit exceeded: {request.remote_addr} on {request.endpoint} ({tournament_id})')
    return not allowed


# Response helpers

def _error(message: str, status: int = 400, **extra):
    body = {'success': False, 'error': message}
    body.update(extra)
    return jsonify(body), status


def _validation_error(errors: list):
    return _error('Validation failed', 400, details=errors)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _to_int(value, default=None):
    if value is None or value == '':
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _paginate(items: list, page: int, limit: int) -> tuple:
    page = max(page, 1)
    limit = max(limit, 1)
    total = len(items)
    start = (page - 1) * limit
    return items[start:start + limit], {
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': (total + limit - 1) // limit,
    }


def _admin_emails() -> list:
    return [u['email'] for u in load_users() if u.get('email') and u.get('isActive', True)]


def _queue_notifications(*messages):
    """Append messages to the notification outbox; failures are logged only."""
    entries = []
    for message in messages:
        if not message or not message.get('to'):
            continue
        entry = dict(message)
        entry.update({'id': _new_id(), 'status': 'queued', 'createdAt': _now()})
        entries.append(entry)
    if not entries:
        return
    try:
        with _data_lock():
            notifications = load_notifications()
            notifications.extend(entries)
            save_notifications(notifications)
    except OSError as e:
        app.logger.error(f'Failed to queue {len(entries)} notification(s): {e}')
        return
    for entry in entries:
        app.logger.info(f"Notification queued ({entry['kind']}) to {', '.join(entry['to'])}")


# ============================================================================
# Authentication
# ============================================================================

@app.route('/api/auth/login', methods=['POST'])
def api_login():
    """Sign in with username or email."""
    data = _json_body()
    identifier = str(data.get('username') or data.get('email') or '')
    password = str(data.get('password') or '')
    if not identifier or not password:
        return _error('Username and password are required')

    user = authenticate_user(identifier, password)
    if not user:
        app.logger.warning(f'Failed login for {identifier!r} from {request.remote_addr}')
        return _error('Invalid credentials', 401)

    session.permanent = True
    session['user'] = user['username']
    session['role'] = user.get('role', 'ADMIN')
    app.logger.info(f"User logged in: {user['username']}")
    return jsonify({'success': True, 'user': _public_user(user)})


@app.route('/api/auth/logout', methods=['POST'])
def api_logout():
    user = session.pop('user', None)
    session.pop('role', None)
    if user:
        app.logger.info(f'User logged out: {user}')
    return jsonify({'success': True})


@app.route('/api/auth/verify')
@login_required
def api_verify_session():
    """Return the signed-in admin."""
    user = next((u for u in load_users() if u['username'] == session['user']), None)
    if not user or not user.get('isActive', True):
        session.clear()
        return _error('Session is no longer valid', 401)
    return jsonify({'success': True, 'user': _public_user(user)})


@app.route('/api/admin/users', methods=['GET', 'POST'])
@superadmin_required
def api_admin_users():
    """List or create admin accounts."""
    if request.method == 'GET':
        return jsonify({'success': True, 'users': [_public_user(u) for u in load_users()]})

    data = _json_body()
    ok, msg = create_user(str(data.get('username') or ''), str(data.get('password') or ''),
                          data.get('email'), data.get('role') or 'ADMIN')
    if not ok:
        return _error(msg, 409 if 'taken' in msg or 'in use' in msg else 400)
    user = next(u for u in load_users() if u['username'] == str(data['username']).lower().strip())
    return jsonify({'success': True, 'message': msg, 'user': _public_user(user)}), 201


@app.route('/api/admin/users/<user_id>', methods=['PUT', 'DELETE'])
@superadmin_required
def api_admin_user(user_id):
    """Update or delete one admin account."""
    data = _json_body()
    with _data_lock():
        users = load_users()
        user = next((u for u in users if u.get('id') == user_id), None)
        if not user:
            return _error('User not found', 404)
        is_self = user['username'] == session['user']

        if request.method == 'DELETE':
            if is_self:
                return _error('You cannot delete your own account')
            users.remove(user)
            save_users(users)
            app.logger.info(f"User deleted: {user['username']} by {session['user']}")
            return jsonify({'success': True})

        if 'role' in data:
            if data['role'] not in USER_ROLES:
                return _error(f"Role must be one of {', '.join(USER_ROLES)}")
            user['role'] = data['role']
        if 'isActive' in data:
            if is_self and not data['isActive']:
                return _error('You cannot deactivate your own account')
            user['isActive'] = bool(data['isActive'])
        if 'email' in data:
            user['email'] = (data['email'] or '').strip().lower() or None
        if data.get('password'):
            if len(data['password']) < 6:
                return _error('Password must be at least 6 characters.')
            user['password_hash'] = generate_password_hash(data['password'])
        save_users(users)
    app.logger.info(f"User updated: {user['username']} by {session['user']}")
    return jsonify({'success': True, 'user': _public_user(user)})


# ============================================================================
# Tournaments
# ============================================================================

def _tournament_counts(tournament_id: str) -> dict:
    return {
        'registrations': len(load_registrations(tournament_id)),
        'matches': len(load_matches(tournament_id)),
        'auctionPlayers': len(load_auction_players(tournament_id)),
        'teamOwners': len(load_team_owners(tournament_id)),
    }


@app.route('/api/tournaments', methods=['GET'])
def api_list_tournaments():
    """Public tournament listing with status filter and offset pagination."""
    status = request.args.get('status', 'all')
    limit = _to_int(request.args.get('limit'), 10)
    offset = max(_to_int(request.args.get('offset'), 0), 0)
    if status == 'open':
        status = 'REGISTRATION_OPEN'

    tournaments = load_tournaments()
    if status and status != 'all':
        tournaments = [t for t in tournaments if t.get('status') == status]
    tournaments.sort(key=lambda t: t.get('startDate') or '')

    total = len(tournaments)
    page = tournaments[offset:offset + limit]
    results = []
    for tournament in page:
        item = dict(tournament)
        item['_count'] = _tournament_counts(tournament['id'])
        results.append(item)
    return jsonify({
        'success': True,
        'tournaments': results,
        'pagination': {'total': total, 'limit': limit, 'offset': offset, 'hasMore': offset + limit < total},
    })


@app.route('/api/tournaments', methods=['POST'])
@login_required
def api_create_tournament():
    data = _json_body()
    with _data_lock():
        tournaments = load_tournaments()
        tournament_id = _unique_slug(str(data.get('name') or ''), {t['id'] for t in tournaments})
        tournament, errors = build_tournament(data, tournament_id)
        if errors:
            return _validation_error(errors)
        tournament['createdBy'] = session['user']
        tournaments.append(tournament)
        save_tournaments(tournaments)
        os.makedirs(_tournament_dir(tournament_id), exist_ok=True)
        if tournament['isAuctionBased']:
            save_auction_state(tournament_id, new_auction_state())
    app.logger.info(f"Tournament created: {tournament_id} ({tournament['competitionType']}) by {session['user']}")
    return jsonify({'success': True, 'tournament': tournament}), 201


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
def api_get_tournament(tournament_id):
    tournament = find_tournament(tournament_id)
    if not tournament:
        return _error('Tournament not found', 404)
    result = dict(tournament)
    result['registrations'] = load_registrations(tournament_id)
    result['matches'] = sorted(load_matches(tournament_id), key=lambda m: m.get('matchDate') or '')
    result['_count'] = _tournament_counts(tournament_id)
    return jsonify({'success': True, 'tournament': result})


@app.route('/api/tournaments/<tournament_id>', methods=['PUT'])
@login_required
def api_update_tournament(tournament_id):
    data = _json_body()
    with _data_lock():
        tournaments = load_tournaments()
        tournament = find_tournament(tournament_id, tournaments)
        if not tournament:
            return _error('Tournament not found', 404)
        errors = update_tournament(tournament, data)
        if errors:
            return _validation_error(errors)
        save_tournaments(tournaments)
    app.logger.info(f'Tournament updated: {tournament_id} by {session["user"]}')
    return jsonify({'success': True, 'tournament': tournament})


@app.route('/api/tournaments/<tournament_id>', methods=['DELETE'])
@login_required
def api_delete_tournament(tournament_id):
    """Delete a tournament and everything stored under it."""
    with _data_lock():
        tournaments = load_tournaments()
        tournament = find_tournament(tournament_id, tournaments)
        if not tournament:
            return _error('Tournament not found', 404)
        state = load_auction_state(tournament_id)
        deleted = _tournament_counts(tournament_id)
        deleted['auctionRounds'] = len(state['rounds'])
        deleted['auctionBids'] = len(state['bids'])
        deleted['paymentMethods'] = len(load_payment_methods(tournament_id))
        tournaments.remove(tournament)
        save_tournaments(tournaments)
        tournament_path = _tournament_dir(tournament_id)
        if os.path.isdir(tournament_path):
            shutil.rmtree(tournament_path)
    app.logger.info(f'Tournament deleted: {tournament_id} by {session["user"]} ({deleted})')
    return jsonify({'success': True, 'message': f"Tournament {tournament['name']} deleted", 'deleted': deleted})


@app.route('/api/tournaments/<tournament_id>/complete', methods=['GET'])
@login_required
def api_tournament_completion_status(tournament_id):
    """Auction player status histogram for the completion screen."""
    tournament = find_tournament(tournament_id)
    if not tournament:
        return _error('Tournament not found', 404)
    counts = {status: 0 for status in AUCTION_PLAYER_STATUSES}
    players = load_auction_players(tournament_id)
    for player in players:
        counts[player.get('auctionStatus', 'PENDING')] = counts.get(player.get('auctionStatus', 'PENDING'), 0) + 1
    return jsonify({
        'success': True,
        'tournament': {'id': tournament_id, 'name': tournament['name'], 'status': tournament.get('status'),
                       'isAuctionBased': tournament.get('isAuctionBased')},
        'playerCounts': counts,
        'totalPlayers': len(players),
    })


@app.route('/api/tournaments/<tournament_id>/complete', methods=['POST'])
@login_required
def api_complete_tournament(tournament_id):
    """Move approved auction players into the player registry."""
    data = _json_body()
    if data.get('action') != 'move_auction_players':
        return _error('Invalid action')
    with _data_lock():
        tournaments = load_tournaments()
        tournament = find_tournament(tournament_id, tournaments)
        if not tournament:
            return _error('Tournament not found', 404)
        if not tournament.get('isAuctionBased'):
            return _error('This is not an auction-based tournament')
        auction_players = load_auction_players(tournament_id)
        registry = load_players()
        results = move_auction_players(auction_players, registry)
        save_players(registry)
        save_auction_players(tournament_id, auction_players)
        if data.get('markCompleted'):
            tournament['status'] = 'COMPLETED'
            tournament['updatedAt'] = _now()
            save_tournaments(tournaments)
    for failure in results['details']['errors']:
        app.logger.error(f"Could not move auction player {failure['name']}: {failure['error']}")
    app.logger.info(f"Tournament {tournament_id} completion: {results['movedPlayers']} moved, "
                    f"{results['updatedPlayers']} updated, {results['errors']} errors")
    return jsonify({'success': True, 'message': 'Auction players processed successfully', 'results': results})


@app.route('/api/tournaments/<tournament_id>/auto-arrange', methods=['POST'])
@login_required
def api_auto_arrange(tournament_id):
    """Generate the fixture list from confirmed registrations."""
    with _data_lock():
        tournament = find_tournament(tournament_id)
        if not tournament:
            return _error('Tournament not found', 404)
        if not tournament.get('autoArrangeMatches'):
            return _error('Auto-arrangement is not enabled for this tournament')
        confirmed = [r for r in load_registrations(tournament_id) if r.get('status') == 'CONFIRMED']
        if len(confirmed) < 2:
            return _error('At least 2 teams are required to arrange matches')

        teams = [Team(r['teamId'], r['teamName']) for r in confirmed]
        fixtures = arrange_matches(
            tournament['competitionType'], teams, tournament['startDate'], tournament.get('venue'),
            preferred_times=tournament.get('preferredMatchTimes'),
            max_matches_per_day=tournament.get('maxMatchesPerDay'),
            group_size=tournament.get('groupSize'),
            qualifiers_per_group=tournament.get('qualifiersPerGroup'),
        )
        matches = load_matches(tournament_id)
        created = []
        for fixture in fixtures:
            match = dict(fixture)
            match.update({'id': _new_id(), 'tournamentId': tournament_id, 'status': 'SCHEDULED',
                          'homeScore': None, 'awayScore': None, 'winnerId': None, 'createdAt': _now()})
            created.append(match)
        matches.extend(created)
        save_matches(tournament_id, matches)
    app.logger.info(f'Auto-arranged {len(created)} matches for {tournament_id}')
    return jsonify({'success': True, 'message': f'Successfully arranged {len(created)} matches', 'matches': created})


# ============================================================================
# Payment methods and settings
# ============================================================================

PAYMENT_METHOD_FIELDS = ('methodType', 'displayName', 'upiId', 'upiName', 'qrCodeUrl', 'accountName',
                         'bankName', 'accountNumber', 'ifscCode', 'instructions')
PAYMENT_SETTINGS_FIELDS = ('upiId', 'upiName', 'qrCodeUrl', 'accountHolder', 'bankName', 'accountNumber',
                           'ifscCode', 'instructions')


def _apply_payment_method(method: dict, data: dict) -> list:
    errors = []
    for field in PAYMENT_METHOD_FIELDS:
        if field in data:
            method[field] = (str(data[field]).strip() or None) if data[field] is not None else None
    if method.get('methodType') not in PAYMENT_METHODS:
        errors.append(f"methodType: Must be one of {', '.join(PAYMENT_METHODS)}")
    if 'isActive' in data:
        method['isActive'] = bool(data['isActive'])
    if 'displayOrder' in data:
        order = _to_int(data['displayOrder'])
        if order is None:
            errors.append('displayOrder: Must be a number')
        else:
            method['displayOrder'] = order
    return errors


@app.route('/api/tournaments/<tournament_id>/payment-methods', methods=['GET'])
def api_payment_methods(tournament_id):
    """Active payment methods, falling back to the global payment settings."""
    if not find_tournament(tournament_id):
        return _error('Tournament not found', 404)
    methods = [m for m in load_payment_methods(tournament_id) if m.get('isActive', True)]
    methods.sort(key=lambda m: m.get('displayOrder') or 0)
    if not methods:
        payment = load_settings()['payment']
        if payment:
            methods = [dict(payment, id='global', methodType='UPI' if payment.get('upiId') else 'BANK_TRANSFER',
                            displayName='Payment', isActive=True, displayOrder=0)]
    return jsonify({'success': True, 'methods': methods})


@app.route('/api/tournaments/<tournament_id>/payment-methods', methods=['POST'])
@login_required
def api_create_payment_method(tournament_id):
    data = _json_body()
    with _data_lock():
        if not find_tournament(tournament_id):
            return _error('Tournament not found', 404)
        methods = load_payment_methods(tournament_id)
        method = {'id': _new_id(), 'isActive': True,
                  'displayOrder': max((m.get('displayOrder') or 0 for m in methods), default=0) + 1,
                  'createdAt': _now()}
        errors = _apply_payment_method(method, data)
        if errors:
            return _validation_error(errors)
        methods.append(method)
        save_payment_methods(tournament_id, methods)
    return jsonify({'success': True, 'method': method}), 201


@app.route('/api/tournaments/<tournament_id>/payment-methods/<method_id>', methods=['PUT', 'DELETE'])
@login_required
def api_payment_method(tournament_id, method_id):
    data = _json_body()
    with _data_lock():
        if not find_tournament(tournament_id):
            return _error('Tournament not found', 404)
        methods = load_payment_methods(tournament_id)
        method = next((m for m in methods if m['id'] == method_id), None)
        if not method:
            return _error('Payment method not found', 404)
        if request.method == 'DELETE':
            methods.remove(method)
            save_payment_methods(tournament_id, methods)
            return jsonify({'success': True})
        errors = _apply_payment_method(method, data)
        if errors:
            return _validation_error(errors)
        save_payment_methods(tournament_id, methods)
    return jsonify({'success': True, 'method': method})


@app.route('/api/settings/payment', methods=['GET'])
def api_get_payment_settings():
    return jsonify({'success': True, 'settings': load_settings()['payment']})


@app.route('/api/settings/payment', methods=['PUT'])
@login_required
def api_update_payment_settings():
    data = _json_body()
    with _data_lock():
        settings = load_settings()
        for field in PAYMENT_SETTINGS_FIELDS:
            if field in data:
                settings['payment'][field] = (str(data[field]).strip() or None) if data[field] is not None else None
        settings['payment']['updatedAt'] = _now()
        save_settings(settings)
    app.logger.info(f'Payment settings updated by {session["user"]}')
    return jsonify({'success': True, 'settings': settings['payment']})


# ============================================================================
# Team registration
# ============================================================================

def _store_registered_team(cleaned: dict, tournament: dict) -> dict:
    """Create or update the global team and replace its squad."""
    teams = load_teams()
    team = next((t for t in teams if t['name'].lower() == cleaned['teamName'].lower()
                 and (t.get('captainEmail') or '').lower() == cleaned['captainEmail']), None)
    if not team:
        team = {'id': _new_id(), 'createdAt': _now(), 'isActive': True}
        teams.append(team)
    team.update({
        'name': cleaned['teamName'],
        'captainName': cleaned['captainName'],
        'captainPhone': cleaned['captainPhone'],
        'captainEmail': cleaned['captainEmail'],
        'homeGround': cleaned['homeGround'],
        'description': cleaned['description'],
        'updatedAt': _now(),
    })
    save_teams(teams)

    team_size = tournament.get('teamSize') or DEFAULT_MIN_PLAYERS_PER_TEAM
    players = [p for p in load_players() if p.get('teamId') != team['id']]
    for index, entry in enumerate(cleaned['players']):
        player = {
            'id': _new_id(),
            'name': entry['name'],
            'position': entry['position'],
            'experience': entry['experience'],
            'teamId': team['id'],
            'jerseyNumber': index + 1,
            'isSubstitute': index >= team_size,
            'isActive': True,
            'createdAt': _now(),
        }
        player['searchKeywords'] = search_keywords(player)
        players.append(player)
    save_players(players)
    return team


@app.route('/api/tournaments/<tournament_id>/register', methods=['POST'])
def api_register_team(tournament_id):
    """Public (or admin) team registration for a tournament."""
    data = _json_body()
    cleaned, errors = validate_team_registration(data)
    if errors:
        return _validation_error(errors)

    is_admin_registration = cleaned['registrationType'] == 'ADMIN'
    if is_admin_registration and 'user' not in session:
        return _error('Admin authentication required for admin registrations', 401)
    if not is_admin_registration and _rate_limited(tournament_id):
        return _error('Too many submissions. Please try again later.', 429)

    with _data_lock():
        tournament = find_tournament(tournament_id)
        if not tournament:
            return _error('Tournament not found', 404)
        if deadline_passed(tournament):
            return _error('Registration deadline has passed')
        registrations = load_registrations(tournament_id)
        if capacity_reached(tournament, registrations):
            return _error('Tournament has reached maximum number of teams')
        if find_duplicate_registration(registrations, cleaned['teamName'], cleaned['captainEmail']):
            return _error('Team has already registered for this tournament', 409)

        team = _store_registered_team(cleaned, tournament)
        registration = {
            'id': _new_id(),
            'tournamentId': tournament_id,
            'teamId': team['id'],
            'teamName': team['name'],
            'captainName': cleaned['captainName'],
            'captainPhone': cleaned['captainPhone'],
            'captainEmail': cleaned['captainEmail'],
            'playerCount': len(cleaned['players']),
            'registrationType': cleaned['registrationType'],
            'status': 'CONFIRMED' if is_admin_registration else 'PENDING',
            'paymentMethod': cleaned['paymentMethod'],
            'paymentStatus': 'COMPLETED' if cleaned['paymentMethod'] == 'ADMIN' else 'PENDING',
            'paymentAmount': tournament.get('entryFee') or 0,
            'specialRequests': cleaned['specialRequests'],
            'notes': None,
            'registeredAt': _now(),
        }
        if is_admin_registration:
            registration['approvedBy'] = session['user']
            registration['approvedAt'] = registration['registeredAt']
        registrations.append(registration)
        save_registrations(tournament_id, registrations)

    app.logger.info(f"Team registered: {registration['teamName']} for {tournament_id} "
                    f"({registration['registrationType']}, {registration['status']})")
    if not is_admin_registration:
        _queue_notifications(
            notify.team_registration_received(registration, tournament),
            notify.admin_new_registration(_admin_emails(), registration, tournament),
        )
    return jsonify({
        'success': True,
        'message': 'Team registered successfully',
        'registration': registration,
        'team': team,
    }), 201


@app.route('/api/tournaments/<tournament_id>/register', methods=['GET'])
def api_registration_status(tournament_id):
    """Look up a team's registration status by captain email."""
    email = request.args.get('email', '').strip().lower()
    if not email:
        return _error('Email is required')
    if not find_tournament(tournament_id):
        return _error('Tournament not found', 404)
    registration = next((r for r in load_registrations(tournament_id) if r.get('captainEmail') == email), None)
    if not registration:
        return _error('No registration found for this email', 404)
    return jsonify({'success': True, 'registration': {
        key: registration.get(key)
        for key in ('id', 'teamName', 'status', 'paymentStatus', 'paymentAmount', 'registeredAt')
    }})


def _with_team(registration: dict, teams_by_id: dict) -> dict:
    item = dict(registration)
    item['team'] = teams_by_id.get(registration.get('teamId'))
    return item


@app.route('/api/tournaments/<tournament_id>/registrations')
@login_required
def api_tournament_registrations(tournament_id):
    if not find_tournament(tournament_id):
        return _error('Tournament not found', 404)
    teams_by_id = {t['id']: t for t in load_teams()}
    registrations = sorted(load_registrations(tournament_id), key=lambda r: r['registeredAt'], reverse=True)
    return jsonify({'success': True, 'registrations': [_with_team(r, teams_by_id) for r in registrations]})


def _all_registrations(tournament_id: str = None) -> list:
    tournament_ids = [tournament_id] if tournament_id else [t['id'] for t in load_tournaments()]
    registrations = []
    for tid in tournament_ids:
        registrations.extend(load_registrations(tid))
    return registrations


def _locate_registration(registration_id: str):
    """Return (tournament, registrations, registration) or Nones."""
    tournaments = load_tournaments()
    for tournament in tournaments:
        registrations = load_registrations(tournament['id'])
        for registration in registrations:
            if registration['id'] == registration_id:
                return tournament, registrations, registration
    return None, None, None


@app.route('/api/registrations')
@login_required
def api_registrations():
    """Registrations across tournaments: paginated listing or summary counts."""
    tournament_id = request.args.get('tournamentId')
    if tournament_id and not find_tournament(tournament_id):
        return _error('Tournament not found', 404)
    registrations = _all_registrations(tournament_id)

    if request.args.get('summary') == 'true':
        return jsonify({'success': True, 'summary': registration_summary(registrations)})

    status = request.args.get('status')
    if status:
        if status not in REGISTRATION_STATUSES:
            return _error(f"Invalid status. Must be one of {', '.join(REGISTRATION_STATUSES)}")
        registrations = [r for r in registrations if r.get('status') == status]
    registrations.sort(key=lambda r: r['registeredAt'], reverse=True)
    page, pagination = _paginate(registrations, _to_int(request.args.get('page'), 1),
                                 _to_int(request.args.get('limit'), DEFAULT_PAGE_SIZE))
    teams_by_id = {t['id']: t for t in load_teams()}
    return jsonify({'success': True, 'registrations': [_with_team(r, teams_by_id) for r in page],
                    'pagination': pagination})


@app.route('/api/registrations/<registration_id>', methods=['GET'])
@login_required
def api_get_registration(registration_id):
    tournament, _, registration = _locate_registration(registration_id)
    if not registration:
        return _error('Registration not found', 404)
    result = _with_team(registration, {t['id']: t for t in load_teams()})
    result['players'] = sorted((p for p in load_players() if p.get('teamId') == registration.get('teamId')),
                               key=lambda p: p.get('jerseyNumber') or 0)
    result['tournament'] = {key: tournament.get(key)
                            for key in ('id', 'name', 'startDate', 'endDate', 'venue', 'entryFee', 'maxTeams')}
    return jsonify({'success': True, 'registration': result})


@app.route('/api/registrations/<registration_id>', methods=['PATCH'])
@login_required
def api_update_registration(registration_id):
    """Approve, reject or annotate a registration."""
    data = _json_body()
    action = data.get('action')
    message = None
    with _data_lock():
        tournament, registrations, registration = _locate_registration(registration_id)
        if not registration:
            return _error('Registration not found', 404)

        if action == 'approve':
            ok, msg = approve_registration(registration, registrations, tournament, session['user'])
            message = notify.team_registration_approved(registration, tournament) if ok else None
        elif action == 'reject':
            ok, msg = reject_registration(registration, session['user'], data.get('reason'))
            message = notify.team_registration_rejected(registration, tournament) if ok else None
        elif action == 'updatePayment':
            ok, msg = update_payment(registration, data.get('paymentStatus'), data.get('paymentMethod'))
        elif action == 'updateNotes':
            registration['notes'] = data.get('notes')
            ok, msg = True, 'Notes updated'
        else:
            return _error('Invalid action')

        if not ok:
            return _error(msg)
        registration['updatedAt'] = _now()
        save_registrations(tournament['id'], registrations)

    app.logger.info(f"Registration {registration_id} ({registration['teamName']}): {action} by {session['user']}")
    _queue_notifications(message)
    return jsonify({'success': True, 'message': msg, 'registration': registration})


# ============================================================================
# Teams, players and matches
# ============================================================================

TEAM_FIELDS = ('name', 'captainName', 'captainPhone', 'captainEmail', 'city', 'homeGround', 'description',
               'logoUrl', 'isActive')
PLAYER_FIELDS = ('name', 'email', 'phone', 'dateOfBirth', 'address', 'city', 'state', 'pincode', 'position',
                 'battingStyle', 'bowlingStyle', 'experience', 'age', 'fatherName', 'teamId', 'jerseyNumber',
                 'profileImageUrl', 'isActive', 'totalMatches', 'totalRuns', 'totalWickets')
# Stored as stripped strings whatever JSON type arrives
TEAM_TEXT_FIELDS = ('name', 'captainName', 'captainPhone', 'captainEmail', 'city', 'homeGround', 'description',
                    'logoUrl')
PLAYER_TEXT_FIELDS = ('name', 'email', 'phone', 'address', 'city', 'state', 'pincode', 'position',
                      'battingStyle', 'bowlingStyle', 'experience', 'fatherName', 'teamId', 'profileImageUrl')


def _clean_field(field: str, value, text_fields: tuple):
    if field in text_fields:
        return str(value).strip() if value is not None else None
    return value


@app.route('/api/teams', methods=['GET'])
def api_teams():
    teams = sorted(load_teams(), key=lambda t: t['name'].lower())
    query = request.args.get('q', '').strip().lower()
    if query:
        teams = [t for t in teams if query in t['name'].lower() or query in (t.get('city') or '').lower()]
    return jsonify({'success': True, 'teams': teams})


@app.route('/api/teams', methods=['POST'])
@login_required
def api_create_team():
    data = _json_body()
    team = {field: _clean_field(field, data[field], TEAM_TEXT_FIELDS) for field in TEAM_FIELDS if field in data}
    for field in ('name', 'captainName', 'city'):
        team[field] = str(team.get(field) or '').strip()
        if not team[field]:
            return _error(f'{field} is required')
    with _data_lock():
        teams = load_teams()
        if any(t['name'].lower() == team['name'].lower() for t in teams):
            return _error('A team with this name already exists', 409)
        team.update({'id': _new_id(), 'isActive': team.get('isActive', True), 'createdAt': _now()})
        teams.append(team)
        save_teams(teams)
    app.logger.info(f"Team created: {team['name']}")
    return jsonify({'success': True, 'team': team}), 201


@app.route('/api/teams/<team_id>', methods=['GET', 'PUT', 'DELETE'])
def api_team(team_id):
    if request.method != 'GET' and 'user' not in session:
        return _error('Authentication required', 401)
    data = _json_body()
    with _data_lock():
        teams = load_teams()
        team = next((t for t in teams if t['id'] == team_id), None)
        if not team:
            return _error('Team not found', 404)

        if request.method == 'GET':
            result = dict(team)
            result['players'] = sorted((p for p in load_players() if p.get('teamId') == team_id),
                                       key=lambda p: p.get('jerseyNumber') or 0)
            return jsonify({'success': True, 'team': result})

        if request.method == 'DELETE':
            teams.remove(team)
            save_teams(teams)
            players = load_players()
            for player in players:
                if player.get('teamId') == team_id:
                    player['teamId'] = None
            save_players(players)
            app.logger.info(f"Team deleted: {team['name']}")
            return jsonify({'success': True})

        if 'name' in data:
            name = str(data['name'] or '').strip()
            if not name:
                return _error('name is required')
            if any(t is not team and t['name'].lower() == name.lower() for t in teams):
                return _error('A team with this name already exists', 409)
        for field in TEAM_FIELDS:
            if field in data:
                team[field] = _clean_field(field, data[field], TEAM_TEXT_FIELDS)
        team['updatedAt'] = _now()
        save_teams(teams)
    return jsonify({'success': True, 'team': team})


def _apply_player_fields(player: dict, data: dict) -> list:
    errors = []
    for field in PLAYER_FIELDS:
        if field in data:
            player[field] = _clean_field(field, data[field], PLAYER_TEXT_FIELDS)
    if not player.get('name'):
        errors.append('name: Required')
    if player.get('position') and player['position'] not in PLAYER_POSITIONS:
        errors.append('position: Invalid position')
    if player.get('experience') and player['experience'] not in EXPERIENCE_LEVELS:
        errors.append('experience: Invalid experience level')
    if player.get('teamId') and not any(t['id'] == player['teamId'] for t in load_teams()):
        errors.append('teamId: Team not found')
    player['searchKeywords'] = search_keywords(player)
    return errors


@app.route('/api/players', methods=['GET'])
def api_players():
    """Player registry with keyword search."""
    players = load_players()
    query = request.args.get('q', '').strip().lower()
    if query:
        players = [p for p in players if query in (p.get('searchKeywords') or search_keywords(p))]
    team_id = request.args.get('teamId')
    if team_id:
        players = [p for p in players if p.get('teamId') == team_id]
    players.sort(key=lambda p: (p.get('name') or '').lower())
    page, pagination = _paginate(players, _to_int(request.args.get('page'), 1),
                                 _to_int(request.args.get('limit'), DEFAULT_PAGE_SIZE * 5))
    return jsonify({'success': True, 'players': page, 'pagination': pagination})


@app.route('/api/players', methods=['POST'])
@login_required
def api_create_player():
    data = _json_body()
    player = {'id': _new_id(), 'isActive': True, 'totalMatches': 0, 'totalRuns': 0, 'totalWickets': 0}
    errors = _apply_player_fields(player, data)
    if errors:
        return _validation_error(errors)
    player['createdAt'] = _now()
    with _data_lock():
        players = load_players()
        players.append(player)
        save_players(players)
    return jsonify({'success': True, 'player': player}), 201


@app.route('/api/players/<player_id>', methods=['GET', 'PUT', 'DELETE'])
def api_player(player_id):
    if request.method != 'GET' and 'user' not in session:
        return _error('Authentication required', 401)
    data = _json_body()
    with _data_lock():
        players = load_players()
        player = next((p for p in players if p['id'] == player_id), None)
        if not player:
            return _error('Player not found', 404)
        if request.method == 'GET':
            return jsonify({'success': True, 'player': player})
        if request.method == 'DELETE':
            players.remove(player)
            save_players(players)
            return jsonify({'success': True})
        errors = _apply_player_fields(player, data)
        if errors:
            return _validation_error(errors)
        player['updatedAt'] = _now()
        save_players(players)
    return jsonify({'success': True, 'player': player})


def _locate_match(match_id: str):
    """Return (tournament_id, matches, match) or Nones."""
    for tournament in load_tournaments():
        matches = load_matches(tournament['id'])
        for match in matches:
            if match['id'] == match_id:
                return tournament['id'], matches, match
    return None, None, None


def _apply_match_fields(match: dict, data: dict) -> list:
    errors = []
    for field in ('homeTeamId', 'awayTeamId', 'matchDate', 'venue', 'round', 'group', 'homeScore', 'awayScore',
                  'winnerId', 'result', 'manOfTheMatch', 'overs'):
        if field in data:
            match[field] = data[field]
    if 'status' in data:
        if data['status'] not in MATCH_STATUSES:
            errors.append('status: Invalid match status')
        match['status'] = data['status']
    if 'matchType' in data:
        if data['matchType'] not in MATCH_TYPES:
            errors.append('matchType: Invalid match type')
        match['matchType'] = data['matchType']
    for field in ('homeTeamId', 'awayTeamId', 'matchDate'):
        if not match.get(field):
            errors.append(f'{field}: Required')
    if match.get('homeTeamId') and match.get('homeTeamId') == match.get('awayTeamId'):
        errors.append('awayTeamId: A team cannot play itself')
    if match.get('matchDate'):
        try:
            datetime.fromisoformat(str(match['matchDate']))
        except ValueError:
            errors.append('matchDate: Invalid date')
    if match.get('winnerId') and match['winnerId'] not in (match.get('homeTeamId'), match.get('awayTeamId')):
        errors.append('winnerId: Winner must be one of the playing teams')
    return errors


@app.route('/api/matches', methods=['GET'])
def api_matches():
    tournament_id = request.args.get('tournamentId')
    if tournament_id:
        if not find_tournament(tournament_id):
            return _error('Tournament not found', 404)
        matches = load_matches(tournament_id)
    else:
        matches = [m for t in load_tournaments() for m in load_matches(t['id'])]
    matches.sort(key=lambda m: m.get('matchDate') or '', reverse=True)
    return jsonify({'success': True, 'matches': matches})


@app.route('/api/matches', methods=['POST'])
@login_required
def api_create_match():
    data = _json_body()
    tournament_id = data.get('tournamentId')
    with _data_lock():
        if not tournament_id or not find_tournament(tournament_id):
            return _error('Tournament not found', 404)
        match = {'id': _new_id(), 'tournamentId': tournament_id, 'status': 'SCHEDULED', 'matchType': 'LEAGUE',
                 'homeScore': None, 'awayScore': None, 'winnerId': None}
        errors = _apply_match_fields(match, data)
        if errors:
            return _validation_error(errors)
        match['createdAt'] = _now()
        matches = load_matches(tournament_id)
        matches.append(match)
        save_matches(tournament_id, matches)
    return jsonify({'success': True, 'match': match}), 201


@app.route('/api/matches/<match_id>', methods=['GET', 'PUT', 'DELETE'])
def api_match(match_id):
    if request.method != 'GET' and 'user' not in session:
        return _error('Authentication required', 401)
    data = _json_body()
    with _data_lock():
        tournament_id, matches, match = _locate_match(match_id)
        if not match:
            return _error('Match not found', 404)
        if request.method == 'GET':
            return jsonify({'success': True, 'match': match})
        if request.method == 'DELETE':
            matches.remove(match)
            save_matches(tournament_id, matches)
            return jsonify({'success': True})
        errors = _apply_match_fields(match, data)
        if errors:
            return _validation_error(errors)
        match['updatedAt'] = _now()
        save_matches(tournament_id, matches)
    app.logger.info(f"Match updated: {match_id} ({match.get('status')})")
    return jsonify({'success': True, 'match': match})


# ============================================================================
# Auction players
# ============================================================================

def _auction_tournament(tournament_id: str, tournaments: list = None):
    """Return (tournament, error_response) for auction-only endpoints."""
    tournament = find_tournament(tournament_id, tournaments)
    if not tournament:
        return None, _error('Tournament not found', 404)
    if not tournament.get('isAuctionBased'):
        return None, _error('This is not an auction-based tournament')
    return tournament, None


def _auction_status_order(player: dict) -> tuple:
    status = player.get('auctionStatus', 'PENDING')
    rank = AUCTION_PLAYER_STATUSES.index(status) if status in AUCTION_PLAYER_STATUSES else len(AUCTION_PLAYER_STATUSES)
    return rank, (player.get('name') or '').lower()


@app.route('/api/tournaments/<tournament_id>/auction-players', methods=['GET'])
def api_auction_players(tournament_id):
    tournament, error = _auction_tournament(tournament_id)
    if error:
        return error
    players = load_auction_players(tournament_id)
    status = request.args.get('status')
    if status:
        players = [p for p in players if p.get('auctionStatus') == status]
    query = request.args.get('q', '').strip().lower()
    if query:
        players = [p for p in players if query in (p.get('name') or '').lower() or query in (p.get('phone') or '')]
    players.sort(key=_auction_status_order)
    return jsonify({'success': True, 'players': players, 'total': len(players)})


@app.route('/api/tournaments/<tournament_id>/auction-players', methods=['POST'])
def api_register_auction_player(tournament_id):
    """Public player sign-up for an auction tournament."""
    data = _json_body()
    cleaned, errors = validate_auction_player(data)
    if errors:
        return _validation_error(errors)
    if _rate_limited(tournament_id):
        return _error('Too many submissions. Please try again later.', 429)

    with _data_lock():
        tournament, error = _auction_tournament(tournament_id)
        if error:
            return error
        if deadline_passed(tournament):
            return _error('Registration deadline has passed')
        players = load_auction_players(tournament_id)
        if find_registered_player(players, cleaned['phone'], cleaned['email']):
            return _error('A player with this phone or email is already registered for this tournament', 409)
        player = dict(cleaned)
        player.update({
            'id': _new_id(),
            'tournamentId': tournament_id,
            'auctionStatus': 'AVAILABLE',
            'soldPrice': None,
            'teamOwnerId': None,
            'soldTo': None,
            'entryFeePaid': False,
            'registeredAt': _now(),
        })
        players.append(player)
        save_auction_players(tournament_id, players)

    app.logger.info(f"Auction player registered: {player['name']} for {tournament_id}")
    _queue_notifications(
        notify.player_registered(player, tournament),
        notify.admin_new_player(_admin_emails(), player, tournament),
    )
    return jsonify({'success': True, 'message': 'Player registered successfully', 'player': player}), 201


@app.route('/api/tournaments/<tournament_id>/auction-players', methods=['PATCH'])
@login_required
def api_update_auction_player_status(tournament_id):
    """Change a player's auction status; sales go through the auction ledger."""
    data = _json_body()
    player_id = data.get('playerId')
    status = data.get('auctionStatus')
    if not player_id or not status:
        return _error('playerId and auctionStatus are required')
    if status not in AUCTION_PLAYER_STATUSES:
        return _error(f"Invalid auction status. Must be one of {', '.join(AUCTION_PLAYER_STATUSES)}")

    with _data_lock():
        tournaments = load_tournaments()
        tournament, error = _auction_tournament(tournament_id, tournaments)
        if error:
            return error
        auction = _load_auction(tournament)
        try:
            player = auction.get_player(player_id)
            if 'basePrice' in data:
                base_price = _to_int(data['basePrice'])
                if base_price is None or base_price < 0:
                    return _error('basePrice must be a non-negative number')
                player['basePrice'] = base_price
            if status == 'SOLD':
                owner_id = data.get('teamOwnerId')
                price = _to_int(data.get('soldPrice'))
                if not owner_id or price is None:
                    return _error('teamOwnerId and soldPrice are required to sell a player')
                auction.sell(player_id, owner_id, price)
            elif status == 'UNSOLD':
                auction.mark_unsold(player_id)
            else:
                if player.get('auctionStatus') == 'SOLD':
                    return _error('Sold players cannot change status')
                player['auctionStatus'] = status
        except AuctionError as e:
            return _error(e.message, e.status, **e.details)
        player['updatedAt'] = _now()
        _save_auction(tournament, auction, tournaments)

    app.logger.info(f"Auction player {player['name']} -> {status} in {tournament_id}")
    _queue_notifications(notify.player_status_changed(player, tournament))
    return jsonify({'success': True, 'player': player})


@app.route('/api/tournaments/<tournament_id>/auction-players/check-duplicate', methods=['POST'])
def api_check_duplicate_auction_player(tournament_id):
    data = _json_body()
    name = str(data.get('name') or '').strip()
    phone = str(data.get('phone') or '').strip()
    if not name or not phone:
        return _error('Name and phone are required')
    if not find_tournament(tournament_id):
        return _error('Tournament not found', 404)
    match = find_similar_player(load_auction_players(tournament_id), name, phone, data.get('email'))
    player = None
    if match:
        player = {key: match.get(key) for key in ('id', 'name', 'phone', 'email', 'auctionStatus', 'registeredAt')}
    return jsonify({'success': True, 'exists': match is not None, 'player': player})


@app.route('/api/tournaments/<tournament_id>/auction-players/<player_id>', methods=['GET', 'PUT', 'DELETE'])
@login_required
def api_auction_player(tournament_id, player_id):
    data = _json_body()
    with _data_lock():
        tournaments = load_tournaments()
        tournament, error = _auction_tournament(tournament_id, tournaments)
        if error:
            return error
        auction = _load_auction(tournament)
        try:
            player = auction.get_player(player_id)
        except AuctionError as e:
            return _error(e.message, e.status)

        if request.method == 'GET':
            result = dict(player)
            result['bids'] = auction.bid_history(player_id)
            return jsonify({'success': True, 'player': result})

        if request.method == 'DELETE':
            if player.get('auctionStatus') == 'SOLD':
                return _error('Sold players cannot be deleted')
            auction.players.remove(player)
            auction.state['bids'] = [b for b in auction.bids if b['playerId'] != player_id]
            for auction_round in auction.rounds:
                if player_id in auction_round['playerIds']:
                    auction_round['playerIds'].remove(player_id)
                if auction_round.get('currentPlayerId') == player_id:
                    auction_round['currentPlayerId'] = None
            _save_auction(tournament, auction, tournaments)
            app.logger.info(f"Auction player deleted: {player['name']} from {tournament_id}")
            return jsonify({'success': True})

        merged = dict(player)
        merged.update(data)
        cleaned, errors = validate_auction_player(merged)
        if errors:
            return _validation_error(errors)
        others = [p for p in auction.players if p is not player]
        if find_registered_player(others, cleaned['phone'], cleaned['email']):
            return _error('A player with this phone or email is already registered for this tournament', 409)
        player.update(cleaned)
        player['updatedAt'] = _now()
        _save_auction(tournament, auction, tournaments)
    return jsonify({'success': True, 'player': player})


# ============================================================================
# Team owners
# ============================================================================

OWNER_ACTIONS = ('VERIFY', 'MARK_PAID', 'UNMARK_PAID', 'REJECT', 'REGENERATE_TOKEN')


@app.route('/api/tournaments/<tournament_id>/team-owners', methods=['GET'])
@login_required
def api_team_owners(tournament_id):
    tournament, error = _auction_tournament(tournament_id)
    if error:
        return error
    owners = sorted(load_team_owners(tournament_id), key=lambda o: o['createdAt'], reverse=True)
    return jsonify({'success': True, 'owners': owners, 'maxOwners': tournament.get('auctionTeamCount')})


@app.route('/api/tournaments/<tournament_id>/team-owners', methods=['POST'])
def api_register_team_owner(tournament_id):
    """Public team owner application for an auction tournament."""
    data = _json_body()
    cleaned, errors = validate_team_owner(data)
    if errors:
        return _validation_error(errors)
    if _rate_limited(tournament_id):
        return _error('Too many submissions. Please try again later.', 429)

    with _data_lock():
        tournament, error = _auction_tournament(tournament_id)
        if error:
            return error
        owners = load_team_owners(tournament_id)
        refusal = owner_registration_error(tournament, owners, cleaned)
        if refusal:
            return _error(*refusal)
        budget = initial_owner_budget(tournament)
        owner = dict(cleaned)
        owner.update({
            'id': _new_id(),
            'tournamentId': tournament_id,
            'teamIndex': next_team_index(owners),
            'verified': False,
            'entryFeePaid': False,
            'auctionToken': None,
            'totalBudget': budget,
            'remainingBudget': budget,
            'currentPlayers': 0,
            'minPlayersNeeded': tournament.get('minPlayersPerTeam') or DEFAULT_MIN_PLAYERS_PER_TEAM,
            'isParticipating': True,
            'createdAt': _now(),
        })
        owners.append(owner)
        save_team_owners(tournament_id, owners)

    app.logger.info(f"Team owner registered: {owner['teamName']} ({owner['ownerName']}) for {tournament_id}")
    _queue_notifications(
        notify.owner_registered(owner, tournament),
        notify.admin_new_owner(_admin_emails(), owner, tournament),
    )
    return jsonify({'success': True, 'message': 'Team owner registered successfully',
                    'owner': _public_owner(owner)}), 201


@app.route('/api/tournaments/<tournament_id>/team-owners/<owner_id>', methods=['PATCH'])
@login_required
def api_update_team_owner(tournament_id, owner_id):
    """Verify, reject, mark payment or rotate the auction token of an owner."""
    action = _json_body().get('action')
    if action not in OWNER_ACTIONS:
        return _error('Invalid action')
    with _data_lock():
        tournament, error = _auction_tournament(tournament_id)
        if error:
            return error
        owners = load_team_owners(tournament_id)
        owner = next((o for o in owners if o['id'] == owner_id), None)
        if not owner:
            return _error('Team owner not found', 404)

        message = None
        if action == 'VERIFY':
            owner['verified'] = True
            owner['verifiedAt'] = _now()
            owner['verifiedBy'] = session['user']
            if not owner.get('auctionToken'):
                owner['auctionToken'] = secrets.token_urlsafe(24)
            message = notify.owner_verified(owner, tournament)
        elif action == 'MARK_PAID':
            owner['entryFeePaid'] = True
            owner['paidAt'] = _now()
            message = notify.owner_payment_confirmed(owner, tournament)
        elif action == 'UNMARK_PAID':
            owner['entryFeePaid'] = False
            owner['paidAt'] = None
        elif action == 'REJECT':
            owner['verified'] = False
            owner['entryFeePaid'] = False
            owner['auctionToken'] = None
            message = notify.owner_rejected(owner, tournament)
        elif action == 'REGENERATE_TOKEN':
            if not owner.get('verified'):
                return _error('Only verified owners have an auction token')
            owner['auctionToken'] = secrets.token_urlsafe(24)
            message = notify.owner_verified(owner, tournament)
        owner['updatedAt'] = _now()
        save_team_owners(tournament_id, owners)

    app.logger.info(f"Team owner {owner['teamName']} in {tournament_id}: {action} by {session['user']}")
    _queue_notifications(message)
    return jsonify({'success': True, 'owner': owner})


@app.route('/api/tournaments/<tournament_id>/team-owners/verify', methods=['POST'])
def api_verify_team_owner_token(tournament_id):
    """Exchange an auction token for the owner's profile."""
    data = _json_body()
    tournament, error = _auction_tournament(tournament_id)
    if error:
        return error
    owner = _owner_for_token(load_team_owners(tournament_id), _request_token(data))
    if not owner:
        app.logger.warning(f'Rejected auction token for {tournament_id} from {request.remote_addr}')
        return _error('Invalid or unverified auction token', 403)
    return jsonify({'success': True, 'owner': owner, 'tournament': public_summary(tournament)})


@app.route('/api/tournaments/<tournament_id>/team-owners/<owner_id>/dashboard')
def api_team_owner_dashboard(tournament_id, owner_id):
    """Owner squad, recent sales and spending statistics."""
    tournament, error = _auction_tournament(tournament_id)
    if error:
        return error
    owners = load_team_owners(tournament_id)
    owner = next((o for o in owners if o['id'] == owner_id), None)
    if not owner:
        return _error('Team owner not found', 404)
    if 'user' not in session:
        token_owner = _owner_for_token(owners, _request_token())
        if not token_owner or token_owner['id'] != owner_id:
            return _error('Not authorized for this dashboard', 403)
    dashboard = owner_dashboard(owner, load_auction_players(tournament_id),
                                load_auction_state(tournament_id)['status'])
    return jsonify({'success': True, 'tournament': public_summary(tournament), **dashboard})


# ============================================================================
# Live auction
# ============================================================================

def _load_auction(tournament: dict) -> Auction:
    tournament_id = tournament['id']
    return Auction(tournament, load_auction_state(tournament_id),
                   load_auction_players(tournament_id), load_team_owners(tournament_id))


def _save_auction(tournament: dict, auction: Auction, tournaments: list):
    """Persist auction state, players and owners; mirror the status on the tournament."""
    tournament_id = tournament['id']
    save_auction_state(tournament_id, auction.state)
    save_auction_players(tournament_id, auction.players)
    save_team_owners(tournament_id, auction.owners)
    if tournament.get('auctionStatus') != auction.status:
        tournament['auctionStatus'] = auction.status
        save_tournaments(tournaments)


def _run_live_action(auction: Auction, action: str, data: dict):
    """Dispatch one auctioneer action. Returns (message, payload, notification)."""
    player_id = data.get('playerId')
    if action == 'START_AUCTION':
        auction.start()
        return 'Auction started', {}, None
    if action == 'PAUSE_AUCTION':
        auction.pause()
        return 'Auction paused', {}, None
    if action == 'RESUME_AUCTION':
        auction.resume()
        return 'Auction resumed', {}, None
    if action == 'END_AUCTION':
        auction.end()
        return 'Auction ended', {}, None
    if action == 'CREATE_ROUND':
        auction_round = auction.create_round(data.get('roundName') or data.get('name'), data.get('playerIds'))
        return f"{auction_round['name']} created", {'round': auction_round}, None
    if action == 'BULK_CREATE_ROUNDS':
        entries = data.get('rounds')
        if not isinstance(entries, list) or not entries:
            raise AuctionError('rounds must be a non-empty list')
        rounds = auction.bulk_create_rounds([e for e in entries if isinstance(e, dict)])
        return f'{len(rounds)} rounds created', {'rounds': rounds}, None
    if action == 'AUTO_CREATE_ROUNDS':
        round_count = _to_int(data.get('roundCount'))
        if not round_count:
            raise AuctionError('roundCount is required')
        rounds = auction.auto_create_rounds(round_count)
        return f'{len(rounds)} rounds created', {'rounds': rounds}, None
    if action == 'START_ROUND':
        auction_round = auction.start_round(data.get('roundId'))
        return f"{auction_round['name']} started", {'round': auction_round}, None
    if action == 'ASSIGN_PLAYERS_TO_ROUND':
        auction_round = auction.assign_players_to_round(data.get('roundId'), data.get('playerIds') or [])
        return 'Players assigned', {'round': auction_round}, None
    if action == 'SET_CURRENT_PLAYER':
        auction_round = auction.set_current_player(player_id)
        return 'Current player set', {'round': auction_round}, None
    if action == 'PLACE_BID':
        amount = _to_int(data.get('bidAmount'))
        if amount is None:
            raise AuctionError('bidAmount must be a number')
        bid, warning = auction.place_bid(data.get('teamOwnerId') or data.get('teamId'), player_id, amount)
        return 'Bid placed', {'bid': bid, 'budgetWarning': warning}, None
    if action == 'SELL_PLAYER':
        current = auction.active_round()
        player_id = player_id or (current or {}).get('currentPlayerId')
        amount = _to_int(data.get('finalAmount'))
        if not player_id or not data.get('teamId') or amount is None:
            raise AuctionError('playerId, teamId and finalAmount are required')
        player = auction.sell_player(player_id, data['teamId'], amount)
        return f"{player['name']} sold to {player['soldTo']}", {'player': player}, player
    if action == 'UNSOLD_PLAYER':
        current = auction.active_round()
        player = auction.mark_unsold(player_id or (current or {}).get('currentPlayerId'))
        return f"{player['name']} unsold", {'player': player}, player
    if action == 'RESELECT_PLAYER':
        player = auction.reselect_player(player_id)
        return f"{player['name']} is available again", {'player': player}, None
    raise AuctionError('Invalid action')


@app.route('/api/tournaments/<tournament_id>/auction/live', methods=['GET'])
def api_auction_live(tournament_id):
    tournament, error = _auction_tournament(tournament_id)
    if error:
        return error
    view = _load_auction(tournament).live_view()
    view['teamOwners'] = [_public_owner(o) for o in view['teamOwners']]
    return jsonify({'success': True, 'tournament': public_summary(tournament), **view})


@app.route('/api/tournaments/<tournament_id>/auction/live', methods=['POST'])
@login_required
def api_auction_live_action(tournament_id):
    data = _json_body()
    action = data.get('action')
    if not action:
        return _error('action is required')
    with _data_lock():
        tournaments = load_tournaments()
        tournament, error = _auction_tournament(tournament_id, tournaments)
        if error:
            return error
        auction = _load_auction(tournament)
        try:
            message, payload, changed_player = _run_live_action(auction, action, data)
        except AuctionError as e:
            return _error(e.message, e.status, **e.details)
        _save_auction(tournament, auction, tournaments)

    app.logger.info(f'Auction {tournament_id}: {action} ({message})')
    if changed_player:
        _queue_notifications(notify.player_status_changed(changed_player, tournament))
    return jsonify({'success': True, 'message': message, 'auctionStatus': auction.status, **payload})


@app.route('/api/tournaments/<tournament_id>/auction/bid', methods=['POST'])
def api_auction_bid(tournament_id):
    """Place a bid as a team owner (auction token) or on an owner's behalf (admin)."""
    data = _json_body()
    player_id = data.get('playerId')
    amount = _to_int(data.get('bidAmount'))
    if not player_id or not amount:
        return _error('Missing required fields')

    with _data_lock():
        tournaments = load_tournaments()
        tournament, error = _auction_tournament(tournament_id, tournaments)
        if error:
            return error
        auction = _load_auction(tournament)
        if 'user' in session:
            owner_id = data.get('teamOwnerId')
        else:
            token_owner = _owner_for_token(auction.owners, _request_token(data))
            if not token_owner:
                return _error('Invalid or unverified auction token', 403)
            if data.get('teamOwnerId') and data['teamOwnerId'] != token_owner['id']:
                return _error('Token does not belong to this team owner', 403)
            owner_id = token_owner['id']
        if not owner_id:
            return _error('Missing required fields')
        try:
            bid, warning = auction.place_bid(owner_id, player_id, amount)
        except AuctionError as e:
            return _error(e.message, e.status, **e.details)
        _save_auction(tournament, auction, tournaments)

    app.logger.info(f"Bid {bid['bidAmount']} by {bid['teamName']} on {bid['playerName']} ({tournament_id})")
    return jsonify({'success': True, 'bid': bid, 'budgetWarning': warning,
                    'message': f"Bid placed successfully for {bid['playerName']}"})


@app.route('/api/tournaments/<tournament_id>/auction/bid', methods=['GET'])
def api_auction_current_bids(tournament_id):
    tournament, error = _auction_tournament(tournament_id)
    if error:
        return error
    view = _load_auction(tournament).live_view()
    current_round = view['currentRound']
    if not current_round:
        return jsonify({'success': True, 'currentRound': None, 'currentPlayer': None, 'bids': []})
    return jsonify({
        'success': True,
        'currentRound': {key: current_round.get(key) for key in ('id', 'name', 'roundNumber', 'status')},
        'currentPlayer': current_round['currentPlayer'],
        'bids': current_round['bids'],
    })


@app.route('/api/tournaments/<tournament_id>/auction/players/<player_id>', methods=['GET'])
def api_auction_player_bids(tournament_id, player_id):
    tournament, error = _auction_tournament(tournament_id)
    if error:
        return error
    auction = _load_auction(tournament)
    try:
        player = dict(auction.get_player(player_id))
    except AuctionError as e:
        return _error(e.message, e.status)
    player['bids'] = auction.bid_history(player_id)
    return jsonify({'success': True, 'player': player})


@app.route('/api/tournaments/<tournament_id>/auction/players/<player_id>', methods=['POST'])
@login_required
def api_auction_player_action(tournament_id, player_id):
    """Auctioneer actions on one player: direct sale, sale, unsold, put on the block."""
    data = _json_body()
    action = data.get('action')
    next_player = None
    with _data_lock():
        tournaments = load_tournaments()
        tournament, error = _auction_tournament(tournament_id, tournaments)
        if error:
            return error
        auction = _load_auction(tournament)
        try:
            if action == 'SELL_TO_TEAM':
                amount = _to_int(data.get('amount', data.get('finalPrice')))
                if not data.get('teamOwnerId') or amount is None:
                    return _error('teamOwnerId and amount are required')
                player, next_player = auction.sell_to_team(player_id, data['teamOwnerId'], amount)
            elif action == 'SELL':
                player = auction.sell(player_id, data.get('teamOwnerId'), _to_int(data.get('finalPrice')))
            elif action == 'UNSOLD':
                player = auction.mark_unsold(player_id)
            elif action == 'SET_CURRENT':
                auction.set_current(player_id)
                player = auction.get_player(player_id)
            else:
                return _error('Invalid action')
        except AuctionError as e:
            return _error(e.message, e.status, **e.details)
        _save_auction(tournament, auction, tournaments)

    app.logger.info(f"Auction {tournament_id}: {action} on {player['name']}")
    if action != 'SET_CURRENT':
        _queue_notifications(notify.player_status_changed(player, tournament))
    return jsonify({'success': True, 'player': player, 'nextPlayer': next_player})


def _get_auction_file_mtimes(tournament_id: str) -> dict:
    """Get modification times of a tournament's auction files."""
    mtimes = {}
    directory = _tournament_dir(tournament_id)
    for name in AUCTION_FILES:
        path = os.path.join(directory, name)
        if os.path.exists(path):
            mtimes[name] = os.path.getmtime(path)
    return mtimes


@app.route('/api/tournaments/<tournament_id>/auction/stream')
def api_auction_stream(tournament_id):
    """Server-Sent Events stream that notifies clients when auction data changes."""
    if not find_tournament(tournament_id):
        return _error('Tournament not found', 404)

    def generate():
        """Yield SSE events, checking auction file mtimes every 3 seconds."""
        yield "event: connected\ndata: ok\n\n"

        last_mtimes = _get_auction_file_mtimes(tournament_id)
        heartbeat_counter = 0

        while True:
            time.sleep(3)
            heartbeat_counter += 3

            current_mtimes = _get_auction_file_mtimes(tournament_id)
            if current_mtimes != last_mtimes:
                last_mtimes = current_mtimes
                yield f"event: update\ndata: {time.time()}\n\n"

            # Send heartbeat every ~15 seconds to keep connection alive
            if heartbeat_counter >= 15:
                heartbeat_counter = 0
                yield ": heartbeat\n\n"

    return Response(
        stream_with_context(generate()),
        mimetype='text/event-stream',
        headers={
            'Cache-Control': 'no-cache',
            'X-Accel-Buffering': 'no',
        },
    )


# ============================================================================
# Admin
# ============================================================================

@app.route('/api/admin/statistics')
@login_required
def api_admin_statistics():
    tournaments = load_tournaments()
    registrations = _all_registrations()
    recent = sorted(tournaments, key=lambda t: t.get('createdAt') or '', reverse=True)[:5]
    return jsonify({'success': True, 'statistics': {
        'totalTournaments': len(tournaments),
        'activeTournaments': sum(1 for t in tournaments if t.get('status') in ('REGISTRATION_OPEN', 'ONGOING')),
        'auctionTournaments': sum(1 for t in tournaments if is_auction_based(t.get('competitionType'))),
        'totalPlayers': len(load_players()),
        'totalTeams': len(load_teams()),
        'registrations': registration_summary(registrations),
        'recentTournaments': [{key: t.get(key) for key in ('id', 'name', 'status', 'startDate', 'createdAt')}
                              for t in recent],
    }})


@app.route('/api/admin/notifications')
@login_required
def api_admin_notifications():
    """Queued notification outbox, newest first."""
    notifications = load_notifications()
    kind = request.args.get('kind')
    if kind:
        notifications = [n for n in notifications if n.get('kind') == kind]
    notifications.sort(key=lambda n: n['createdAt'], reverse=True)
    page, pagination = _paginate(notifications, _to_int(request.args.get('page'), 1),
                                 _to_int(request.args.get('limit'), DEFAULT_PAGE_SIZE))
    return jsonify({'success': True, 'notifications': page, 'pagination': pagination})


@app.route('/api/admin/export')
@require_backup_key
def api_admin_export():
    """Export entire DATA_DIR as a downloadable ZIP file (admin backup)."""
    if not os.path.exists(DATA_DIR):
        app.logger.error(f'Admin export failed: DATA_DIR does not exist: {DATA_DIR}')
        return jsonify({'error': 'Data directory does not exist'}), 404

    app.logger.info(f'Admin export starting: DATA_DIR={DATA_DIR}')

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zf:
        file_count = 0
        skipped_count = 0
        for root, dirs, files in os.walk(DATA_DIR):
            dirs[:] = [d for d in dirs if d not in SITE_EXPORT_SKIP_DIRS]

            for file in files:
                if any(file.endswith(ext) for ext in SITE_EXPORT_SKIP_EXTS) or file == '.secret_key':
                    skipped_count += 1
                    app.logger.debug(f'Skipping file: {file}')
                    continue

                file_path = os.path.join(root, file)
                arcname = os.path.relpath(file_path, DATA_DIR)
                zf.write(file_path, arcname)
                file_count += 1
                app.logger.debug(f'Added to ZIP: {arcname}')

        app.logger.info(f'Admin export: added {file_count} files to ZIP, skipped {skipped_count} files')

    buffer.seek(0)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return send_file(
        buffer,
        mimetype='application/zip',
        as_attachment=True,
        download_name=f'cricket-backup-{timestamp}.zip',
    )


if __name__ == '__main__':
    app.run(debug=True, port=5000)
