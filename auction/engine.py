"""
Store-side operations that touch more than one row or must enforce the
player status rules: the sale transaction, partial player updates, team
deletion and the auction summary.
"""
import logging
from dataclasses import dataclass, fields

from django.db import DatabaseError, transaction
from django.db.models import Count, F, Q

from .exceptions import EntityNotFound, InsufficientFunds, StorageFault, ValidationError
from .models import Player, Team

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self):
        return 'UNSET'

    def __bool__(self):
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class PlayerUpdate:
    """Fields a partial player update may carry; ``UNSET`` means "leave alone"."""

    status: object = UNSET
    style: object = UNSET
    sold_price: object = UNSET
    sold_to_team_id: object = UNSET

    def supplied(self):
        return {
            field.name: getattr(self, field.name)
            for field in fields(self)
            if getattr(self, field.name) is not UNSET
        }


def sell_player(player_id, team_id, amount):
    """
    Sell a player to a team for ``amount`` and debit the team's budget.

    Both writes commit together or not at all. Returns the team's new
    remaining budget.
    """
    logger.info("[SELL] Processing sale - player=%s team=%s amount=%s", player_id, team_id, amount)

    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError(f'Bid amount must be a positive whole number, got {amount!r}')

    try:
        with transaction.atomic():
            try:
                team = Team.objects.select_for_update().get(id=team_id)
            except Team.DoesNotExist:
                raise EntityNotFound('Team', team_id)

            try:
                player = Player.objects.select_for_update().get(id=player_id)
            except Player.DoesNotExist:
                raise EntityNotFound('Player', player_id)

            if player.status != Player.Status.UNSOLD:
                raise ValidationError(f'{player.name} is {player.status} and cannot be sold')

            if amount > team.remaining_budget:
                raise InsufficientFunds(amount, team.remaining_budget)

            before = team.remaining_budget

            # Conditional debit: a concurrent sale that got here first makes this match nothing
            debited = Team.objects.filter(
                id=team.id,
                remaining_budget__gte=amount,
            ).update(remaining_budget=F('remaining_budget') - amount)
            if not debited:
                team.refresh_from_db(fields=['remaining_budget'])
                raise InsufficientFunds(amount, team.remaining_budget)

            Player.objects.filter(id=player.id).update(
                status=Player.Status.SOLD,
                sold_price=amount,
                sold_to_team=team,
            )
            team.refresh_from_db(fields=['remaining_budget'])

    except (EntityNotFound, InsufficientFunds, ValidationError) as exc:
        logger.warning("[SELL] Rejected - player=%s team=%s amount=%s: %s", player_id, team_id, amount, exc.message)
        raise
    except DatabaseError as exc:
        logger.exception("[SELL] Transaction failed - player=%s team=%s", player_id, team_id)
        raise StorageFault(f'Sale could not be stored: {exc}') from exc

    logger.info("[SELL] Budget update for team %s: %s -> %s", team.id, before, team.remaining_budget)
    return team.remaining_budget


def _check_status_transition(player, new_status):
    current = player.status
    if new_status == Player.Status.SOLD and current != Player.Status.SOLD:
        raise ValidationError('Players can only be marked Sold through an auction sale')
    if new_status == current:
        return
    if current == Player.Status.PENDING and new_status == Player.Status.UNSOLD:
        return
    raise ValidationError(f'Cannot change {player.name} from {current} to {new_status}')


def _check_sale_fields(player, status, changes):
    if 'sold_price' not in changes and 'sold_to_team_id' not in changes:
        return
    price = changes.get('sold_price', player.sold_price)
    team_id = changes.get('sold_to_team_id', player.sold_to_team_id)
    if status == Player.Status.SOLD:
        if price != player.sold_price or team_id != player.sold_to_team_id:
            raise ValidationError('Sale price and team of a sold player cannot be edited')
    elif price or team_id is not None:
        raise ValidationError('Only sold players can carry a sale price or team')


def update_player(player_id, update):
    """Write only the fields supplied in ``update``. Returns the changed row count."""
    changes = update.supplied()
    logger.info("[UPDATE] Player %s - fields: %s", player_id, changes)
    if not changes:
        logger.info("[UPDATE] No changes provided")
        return 0

    try:
        with transaction.atomic():
            try:
                player = Player.objects.select_for_update().get(id=player_id)
            except Player.DoesNotExist:
                raise EntityNotFound('Player', player_id)

            status = changes.get('status', player.status)
            if 'status' in changes:
                _check_status_transition(player, status)
            _check_sale_fields(player, status, changes)

            team_id = changes.get('sold_to_team_id')
            if team_id is not None and not Team.objects.filter(id=team_id).exists():
                raise EntityNotFound('Team', team_id)

            changed = Player.objects.filter(id=player.id).update(**changes)
    except DatabaseError as exc:
        logger.exception("[UPDATE] Error updating player %s", player_id)
        raise StorageFault(f'Player update could not be stored: {exc}') from exc

    logger.info("[UPDATE] Changes: %s", changed)
    return changed


def pass_player(player_id):
    """No sale: the player goes (or stays) Unsold and can be staged again later."""
    return update_player(player_id, PlayerUpdate(status=Player.Status.UNSOLD))


def delete_player(player_id):
    """Sold players stay: their price is part of a team's spent purse."""
    try:
        with transaction.atomic():
            try:
                player = Player.objects.select_for_update().get(id=player_id)
            except Player.DoesNotExist:
                raise EntityNotFound('Player', player_id)
            if player.status == Player.Status.SOLD:
                raise ValidationError(f'{player.name} is sold and cannot be deleted')
            player.delete()
    except DatabaseError as exc:
        logger.exception("Error deleting player %s", player_id)
        raise StorageFault(f'Player could not be deleted: {exc}') from exc
    logger.info("Player %s deleted", player_id)


def delete_team(team_id):
    try:
        with transaction.atomic():
            try:
                team = Team.objects.select_for_update().get(id=team_id)
            except Team.DoesNotExist:
                raise EntityNotFound('Team', team_id)
            sold = team.players.count()
            if sold:
                raise ValidationError(f'{team.name} owns {sold} sold player(s) and cannot be deleted')
            team.delete()
    except DatabaseError as exc:
        logger.exception("Error deleting team %s", team_id)
        raise StorageFault(f'Team could not be deleted: {exc}') from exc
    logger.info("Team %s deleted", team_id)


def auction_summary(top=5):
    teams = list(Team.objects.annotate(player_count=Count('players')))
    players = Player.objects.all()

    counts = players.aggregate(
        sold=Count('id', filter=Q(status=Player.Status.SOLD)),
        unsold=Count('id', filter=Q(status=Player.Status.UNSOLD)),
        pending=Count('id', filter=Q(status=Player.Status.PENDING)),
    )

    roles = []
    for value, label in Player.Role.choices:
        role_players = players.filter(role=value)
        roles.append({
            'role': label,
            'count': role_players.count(),
            'sold': role_players.filter(status=Player.Status.SOLD).count(),
        })

    top_buys = players.filter(status=Player.Status.SOLD).order_by('-sold_price', 'id')[:top]

    return {
        'totalSpent': sum(team.spent() for team in teams),
        'playersSold': counts['sold'],
        'playersUnsold': counts['unsold'],
        'playersPending': counts['pending'],
        'topBuys': [player.as_dict() for player in top_buys],
        'roles': roles,
        'teams': [
            {
                'id': team.id,
                'name': team.name,
                'budget': team.budget,
                'remainingBudget': team.remaining_budget,
                'spent': team.spent(),
                'spentPercentage': round(team.spent() / team.budget * 100, 2) if team.budget else 0,
                'playerCount': team.player_count,
            }
            for team in teams
        ],
    }
