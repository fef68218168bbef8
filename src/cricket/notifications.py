"""
Outbound notification messages for registration and auction events.

Builders return plain ``{to, subject, body, kind}`` dicts; the web layer
queues them in the notification outbox.
"""
from typing import Dict, List, Optional


def _message(to, subject: str, body: str, kind: str) -> Dict:
    recipients = [to] if isinstance(to, str) else list(to or [])
    return {'to': [r for r in recipients if r], 'subject': subject, 'body': body, 'kind': kind}


def team_registration_received(registration: Dict, tournament: Dict) -> Dict:
    return _message(
        registration['captainEmail'],
        f"Registration received: {tournament['name']}",
        (f"Hello {registration['captainName']},\n\n"
         f"We received the registration of {registration['teamName']} for {tournament['name']}. "
         f"Your registration is {registration['status'].lower()}. "
         f"Entry fee: {registration.get('paymentAmount') or 0}."),
        'team_registration',
    )


def team_registration_approved(registration: Dict, tournament: Dict) -> Dict:
    return _message(
        registration['captainEmail'],
        f"Registration approved: {tournament['name']}",
        (f"Hello {registration['captainName']},\n\n"
         f"{registration['teamName']} is confirmed for {tournament['name']} "
         f"starting {tournament.get('startDate')} at {tournament.get('venue')}."),
        'team_registration_approved',
    )


def team_registration_rejected(registration: Dict, tournament: Dict) -> Dict:
    reason = registration.get('rejectionReason')
    body = (f"Hello {registration['captainName']},\n\n"
            f"The registration of {registration['teamName']} for {tournament['name']} was not accepted.")
    if reason:
        body += f"\nReason: {reason}"
    return _message(registration['captainEmail'], f"Registration update: {tournament['name']}", body,
                    'team_registration_rejected')


def admin_new_registration(admins: List[str], registration: Dict, tournament: Dict) -> Dict:
    return _message(
        admins,
        f"New team registration: {registration['teamName']}",
        (f"{registration['teamName']} (captain {registration['captainName']}, {registration['captainPhone']}) "
         f"registered for {tournament['name']} with {registration.get('playerCount', 0)} players."),
        'admin_team_registration',
    )


def player_registered(player: Dict, tournament: Dict) -> Dict:
    return _message(
        player['email'],
        f"Auction registration received: {tournament['name']}",
        (f"Hello {player['name']},\n\n"
         f"You are registered for the {tournament['name']} player auction as {player['position']}."),
        'player_registration',
    )


def admin_new_player(admins: List[str], player: Dict, tournament: Dict) -> Dict:
    return _message(
        admins,
        f"New auction player: {player['name']}",
        f"{player['name']} ({player['position']}, {player['phone']}) registered for {tournament['name']}.",
        'admin_player_registration',
    )


def player_status_changed(player: Dict, tournament: Dict) -> Optional[Dict]:
    """Message for an APPROVED, SOLD or UNSOLD player, or None for other statuses."""
    status = player.get('auctionStatus')
    if status == 'APPROVED':
        subject = f"You are approved for the {tournament['name']} auction"
        body = f"Hello {player['name']},\n\nYour profile is approved and will be part of the auction."
    elif status == 'SOLD':
        subject = f"Sold to {player.get('soldTo')}"
        body = (f"Hello {player['name']},\n\nYou were sold to {player.get('soldTo')} "
                f"for {player.get('soldPrice')} points in {tournament['name']}.")
    elif status == 'UNSOLD':
        subject = f"Auction update: {tournament['name']}"
        body = f"Hello {player['name']},\n\nYou went unsold in this round. You may be reselected later."
    else:
        return None
    return _message(player.get('email'), subject, body, f"player_{status.lower()}")


def owner_registered(owner: Dict, tournament: Dict) -> Dict:
    return _message(
        owner['ownerEmail'],
        f"Team owner registration received: {tournament['name']}",
        (f"Hello {owner['ownerName']},\n\n"
         f"{owner['teamName']} is registered for {tournament['name']}. "
         f"Participation cost: {tournament.get('ownerParticipationCost') or 0}. "
         f"You will receive your auction access once verified."),
        'owner_registration',
    )


def admin_new_owner(admins: List[str], owner: Dict, tournament: Dict) -> Dict:
    return _message(
        admins,
        f"New team owner: {owner['teamName']}",
        f"{owner['ownerName']} ({owner['ownerPhone']}) registered {owner['teamName']} for {tournament['name']}.",
        'admin_owner_registration',
    )


def owner_verified(owner: Dict, tournament: Dict) -> Dict:
    return _message(
        owner['ownerEmail'],
        f"Verified for the {tournament['name']} auction",
        (f"Hello {owner['ownerName']},\n\n"
         f"{owner['teamName']} is verified. Your auction token is {owner['auctionToken']}. "
         f"Starting budget: {owner.get('totalBudget')} points."),
        'owner_verified',
    )


def owner_rejected(owner: Dict, tournament: Dict) -> Dict:
    return _message(
        owner['ownerEmail'],
        f"Team owner registration update: {tournament['name']}",
        f"Hello {owner['ownerName']},\n\nThe registration of {owner['teamName']} was not accepted.",
        'owner_rejected',
    )


def owner_payment_confirmed(owner: Dict, tournament: Dict) -> Dict:
    return _message(
        owner['ownerEmail'],
        f"Payment received: {tournament['name']}",
        f"Hello {owner['ownerName']},\n\nWe received the entry fee for {owner['teamName']}.",
        'owner_payment',
    )
