import logging

from channels.db import database_sync_to_async
from django.db import DatabaseError

from .models import Player, Team

logger = logging.getLogger(__name__)

FETCH_ERROR = 'Failed to fetch data. Is the database reachable?'


class AuctionDataCache:
    """
    In-memory mirror of teams and players for one auctioneer session.

    Always refreshed wholesale after a mutation; never patched in place.
    A failed refresh keeps the previous data and sets ``error``.
    """

    def __init__(self):
        self.teams = []
        self.players = []
        self.error = None

    @staticmethod
    def _fetch():
        teams = [team.as_dict() for team in Team.objects.prefetch_related('players')]
        players = [player.as_dict() for player in Player.objects.all()]
        return teams, players

    async def refresh(self):
        try:
            teams, players = await database_sync_to_async(self._fetch)()
        except DatabaseError:
            logger.exception("Auction data refresh failed")
            self.error = FETCH_ERROR
            return False
        self.teams, self.players, self.error = teams, players, None
        return True

    def team(self, team_id):
        return next((team for team in self.teams if team['id'] == team_id), None)

    def player(self, player_id):
        return next((player for player in self.players if player['id'] == player_id), None)

    def unsold_players(self):
        return [player for player in self.players if player['status'] == Player.Status.UNSOLD]

    def next_unsold(self, exclude=()):
        """First unsold player whose id is not in ``exclude``."""
        for player in self.unsold_players():
            if player['id'] not in exclude:
                return player
        return None
