"""
Live auction state machine for one auctioneer session.

    Idle --start--> Bidding --bid--> Bidding
    Bidding --sell / countdown hits 0 with a leader--> Sold
    Bidding --pass--> Idle
    Sold --advance--> Bidding (next unsold player) or Idle (none left)

The controller owns the state object. Every change is published as a
snapshot; the countdown timer only calls ``tick``.
"""
import asyncio
import logging
from dataclasses import dataclass, field

from django.conf import settings

from .exceptions import EntityNotFound, InsufficientFunds, ValidationError
from .models import Player

logger = logging.getLogger(__name__)

IDLE = 'Idle'
BIDDING = 'Bidding'
SOLD = 'Sold'


@dataclass(frozen=True)
class AuctionRules:
    countdown: int = 60
    tick_seconds: float = 1.0
    min_increment: int = 100000
    quick_increments: tuple = (200000, 500000, 1000000)
    custom_increment_max: int = 5000000
    increment_step: int = 100000

    @classmethod
    def from_settings(cls):
        conf = settings.AUCTION
        return cls(
            countdown=conf['COUNTDOWN'],
            tick_seconds=conf['TICK_SECONDS'],
            min_increment=conf['MIN_INCREMENT'],
            quick_increments=tuple(conf['QUICK_INCREMENTS']),
            custom_increment_max=conf['CUSTOM_INCREMENT_MAX'],
            increment_step=conf['INCREMENT_STEP'],
        )

    def check_increment(self, increment):
        """Quick increments, or any step of the custom range (the team step is its floor)."""
        if increment in self.quick_increments:
            return
        if (
            self.min_increment <= increment <= self.custom_increment_max
            and increment % self.increment_step == 0
        ):
            return
        raise ValidationError(
            f'Increment {increment} must be one of {list(self.quick_increments)} or a multiple of '
            f'{self.increment_step} between {self.min_increment} and {self.custom_increment_max}'
        )


@dataclass
class AuctionState:
    phase: str = IDLE
    staged_player: dict | None = None
    current_bid: int = 0
    leading_team_id: int | None = None
    is_sold: bool = False
    countdown: int = 0
    sold_player_ids: set = field(default_factory=set)

    @property
    def staged_player_id(self):
        return self.staged_player['id'] if self.staged_player else None

    def snapshot(self, cache):
        staged = self.staged_player
        if staged is not None:
            staged = cache.player(staged['id']) or staged
        return {
            'stagedPlayer': staged,
            'currentBid': self.current_bid,
            'leadingTeam': cache.team(self.leading_team_id) if self.leading_team_id is not None else None,
            'isSold': self.is_sold,
            'countdown': self.countdown,
        }


class CountdownTimer:
    """Calls ``tick`` every ``interval`` seconds until cancelled."""

    def __init__(self, tick, interval):
        self.tick = tick
        self.interval = interval
        self._task = None

    @property
    def running(self):
        return self._task is not None

    def restart(self):
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self):
        task, self._task = self._task, None
        # a tick that stops its own timer finishes normally
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            if self._task is not asyncio.current_task():
                return
            await self.tick()


class AuctionController:
    """
    Transition functions for the live auction.

    ``seller(player_id, team_id, amount)`` and ``passer(player_id)`` are
    the async store calls; ``on_sold(sale)`` fires once per completed sale.
    """

    def __init__(self, cache, publisher, timer, seller, passer, rules=None, state=None, on_sold=None):
        self.cache = cache
        self.publisher = publisher
        self.timer = timer
        self.seller = seller
        self.passer = passer
        self.rules = rules or AuctionRules()
        self.state = state or AuctionState()
        self.on_sold = on_sold
        self.sell_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    @property
    def selling(self):
        return self.sell_lock.locked()

    def can_afford(self, team, amount):
        return team['remainingBudget'] >= amount

    def eligible_team_ids(self):
        if self.state.phase != BIDDING:
            return []
        bar = self.state.current_bid + self.rules.min_increment
        return [team['id'] for team in self.cache.teams if self.can_afford(team, bar)]

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------

    async def publish(self):
        await self.publisher.publish(self.state.snapshot(self.cache))

    def _require(self, phase, message):
        if self.state.phase != phase:
            raise ValidationError(message)
        if self.selling:
            raise ValidationError('A sale is already being processed')

    async def _stage(self, player):
        if player is None:
            self.state = AuctionState(sold_player_ids=self.state.sold_player_ids)
            self.timer.cancel()
            logger.info("No unsold players left; auction idle")
        else:
            self.state = AuctionState(
                phase=BIDDING,
                staged_player=player,
                current_bid=player['basePrice'],
                countdown=self.rules.countdown,
                sold_player_ids=self.state.sold_player_ids,
            )
            self.timer.restart()
            logger.info("Bidding opened for %s at %s", player['name'], player['basePrice'])
        await self.publish()

    def _next_player(self, exclude=None):
        skip = set(self.state.sold_player_ids)
        if exclude is not None:
            skip.add(exclude)
        return self.cache.next_unsold(exclude=skip)

    async def start(self, player_id=None):
        if self.state.phase == BIDDING:
            raise ValidationError(f"{self.state.staged_player['name']} is still up for bidding")
        if player_id is None:
            await self._stage(self._next_player())
            return self.state

        player = self.cache.player(player_id)
        if player is None:
            raise EntityNotFound('Player', player_id)
        if player['status'] != Player.Status.UNSOLD or player_id in self.state.sold_player_ids:
            raise ValidationError(f"{player['name']} is {player['status']} and cannot be auctioned")
        await self._stage(player)
        return self.state

    async def advance(self):
        if self.state.phase == IDLE:
            raise ValidationError('Start the auction before advancing')
        self._require(SOLD, 'Sell or pass the current player before moving on')
        await self._stage(self._next_player(exclude=self.state.staged_player_id))
        return self.state

    async def bid(self, team_id=None, increment=None):
        self._require(BIDDING, 'No player is up for bidding')

        if team_id is None:
            team_id = self.state.leading_team_id
            if team_id is None:
                raise ValidationError('Select a leading team before raising the bid')
        if increment is None:
            increment = self.rules.min_increment
        self.rules.check_increment(increment)

        team = self.cache.team(team_id)
        if team is None:
            raise EntityNotFound('Team', team_id)

        new_bid = self.state.current_bid + increment
        if not self.can_afford(team, new_bid):
            raise InsufficientFunds(new_bid, team['remainingBudget'])

        self.state.leading_team_id = team_id
        self.state.current_bid = new_bid
        self.state.countdown = self.rules.countdown
        logger.debug("Bid %s by %s for %s", new_bid, team['name'], self.state.staged_player['name'])
        await self.publish()
        return self.state

    async def sell(self):
        """
        Finalize the leading bid. Returns False while a sale or pass is in
        flight or once the player is sold; engine errors propagate unchanged.
        """
        if self.selling:
            logger.info("Sell ignored: a sale or pass is in flight for player %s", self.state.staged_player_id)
            return False

        async with self.sell_lock:
            if self.state.phase == SOLD:
                return False
            if self.state.phase != BIDDING:
                raise ValidationError('No player is up for bidding')
            if self.state.leading_team_id is None:
                raise ValidationError('No leading team to sell to')

            state = self.state
            player = state.staged_player
            team_id = state.leading_team_id
            amount = state.current_bid
            try:
                new_budget = await self.seller(player['id'], team_id, amount)
            except Exception:
                await self.cache.refresh()
                await self.publish()
                raise

            state.phase = SOLD
            state.is_sold = True
            state.sold_player_ids.add(player['id'])
            self.timer.cancel()
            await self.cache.refresh()

        logger.info("%s sold to team %s for %s", player['name'], team_id, amount)
        await self.publish()
        if self.on_sold is not None:
            await self.on_sold({
                'player': self.cache.player(player['id']) or player,
                'team': self.cache.team(team_id),
                'amount': amount,
                'newBudget': new_budget,
            })
        return True

    async def pass_player(self):
        self._require(BIDDING, 'No player is up for bidding')
        player = self.state.staged_player
        # no tick may auto-sell the player being passed
        self.timer.cancel()
        async with self.sell_lock:
            try:
                await self.passer(player['id'])
            except Exception:
                self.timer.restart()
                raise
            self.state = AuctionState(sold_player_ids=self.state.sold_player_ids)
        logger.info("%s passed unsold", player['name'])
        await self.cache.refresh()
        await self.publish()
        return self.state

    async def tick(self):
        if self.state.phase != BIDDING or self.selling or self.state.countdown == 0:
            return
        self.state.countdown -= 1
        await self.publish()
        # expiry with no leader waits for the operator
        if self.state.countdown == 0 and self.state.leading_team_id is not None:
            await self.sell()

    async def refresh(self):
        await self.cache.refresh()
        await self.publish()

    async def close(self):
        self.timer.cancel()
