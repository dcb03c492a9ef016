import asyncio

import pytest

from auction.cache import AuctionDataCache
from auction.controller import BIDDING, IDLE, SOLD, AuctionController, AuctionRules
from auction.exceptions import EntityNotFound, InsufficientFunds, StorageFault, ValidationError

pytestmark = pytest.mark.asyncio


def team(team_id, name, remaining, budget=10_000_000):
    return {'id': team_id, 'name': name, 'budget': budget, 'remainingBudget': remaining, 'logo': None, 'players': []}


def player(player_id, name, base_price=500_000, status='Unsold'):
    return {
        'id': player_id, 'name': name, 'role': 'Batsman', 'style': '', 'basePrice': base_price,
        'image': None, 'status': status, 'soldPrice': 0, 'soldToTeamId': None,
    }


class StaticCache(AuctionDataCache):
    """Cache whose refresh re-reads plain lists instead of the database."""

    def __init__(self, teams, players):
        super().__init__()
        self.teams = teams
        self.players = players
        self.refreshes = 0

    async def refresh(self):
        self.refreshes += 1
        return True


class RecordingPublisher:

    def __init__(self):
        self.snapshots = []

    async def publish(self, snapshot):
        self.snapshots.append(snapshot)


class FakeTimer:

    def __init__(self):
        self.restarts = 0
        self.cancels = 0

    def restart(self):
        self.restarts += 1

    def cancel(self):
        self.cancels += 1


class FakeStore:

    def __init__(self, cache):
        self.cache = cache
        self.sales = []
        self.passes = []
        self.gate = None
        self.pass_gate = None
        self.error = None

    async def sell(self, player_id, team_id, amount):
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self.sales.append((player_id, team_id, amount))
        buyer = self.cache.team(team_id)
        buyer['remainingBudget'] -= amount
        sold = self.cache.player(player_id)
        sold.update(status='Sold', soldPrice=amount, soldToTeamId=team_id)
        return buyer['remainingBudget']

    async def pass_player(self, player_id):
        if self.pass_gate is not None:
            await self.pass_gate.wait()
        if self.error is not None:
            raise self.error
        self.passes.append(player_id)
        return 1


@pytest.fixture
def cache():
    return StaticCache(
        teams=[team(1, 'Kings', 2_000_000), team(2, 'Stars', 600_000), team(3, 'Titans', 550_000)],
        players=[player(10, 'Kohli'), player(11, 'Pending Guy', status='Pending'), player(12, 'Bumrah', 300_000)],
    )


@pytest.fixture
def store(cache):
    return FakeStore(cache)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def sales():
    return []


@pytest.fixture
def controller(cache, store, publisher, timer, sales):
    async def record(sale):
        sales.append(sale)

    return AuctionController(
        cache=cache,
        publisher=publisher,
        timer=timer,
        seller=store.sell,
        passer=store.pass_player,
        rules=AuctionRules(countdown=60),
        on_sold=record,
    )


class TestStart:

    async def test_start_stages_first_unsold_player(self, controller, publisher, timer):
        state = await controller.start()

        assert state.phase == BIDDING
        assert state.staged_player['name'] == 'Kohli'
        assert state.current_bid == 500_000
        assert state.leading_team_id is None
        assert state.countdown == 60
        assert timer.restarts == 1
        assert publisher.snapshots[-1] == {
            'stagedPlayer': state.staged_player,
            'currentBid': 500_000,
            'leadingTeam': None,
            'isSold': False,
            'countdown': 60,
        }

    async def test_start_a_chosen_player(self, controller):
        state = await controller.start(12)

        assert state.staged_player['name'] == 'Bumrah'
        assert state.current_bid == 300_000

    async def test_pending_player_cannot_be_staged(self, controller):
        with pytest.raises(ValidationError):
            await controller.start(11)
        assert controller.state.phase == IDLE

    async def test_unknown_player(self, controller):
        with pytest.raises(EntityNotFound):
            await controller.start(99)

    async def test_cannot_restart_while_bidding(self, controller):
        await controller.start()

        with pytest.raises(ValidationError):
            await controller.start(12)
        assert controller.state.staged_player['id'] == 10

    async def test_start_with_nothing_left_stays_idle(self, controller, cache, timer):
        cache.players = []

        state = await controller.start()

        assert state.phase == IDLE
        assert state.staged_player is None
        assert timer.cancels == 1


class TestBid:

    async def test_bid_raises_and_resets_countdown(self, controller):
        await controller.start()
        controller.state.countdown = 7

        state = await controller.bid(team_id=1)

        assert state.current_bid == 600_000
        assert state.leading_team_id == 1
        assert state.countdown == 60

    async def test_quick_increment(self, controller):
        await controller.start()

        state = await controller.bid(team_id=1, increment=500_000)

        assert state.current_bid == 1_000_000

    async def test_custom_increment_on_the_step(self, controller):
        await controller.start()

        state = await controller.bid(team_id=1, increment=300_000)

        assert state.current_bid == 800_000

    @pytest.mark.parametrize('increment', [50_000, 150_000, 6_000_000, 0, -100_000])
    async def test_invalid_increment(self, controller, increment):
        await controller.start()

        with pytest.raises(ValidationError):
            await controller.bid(team_id=1, increment=increment)
        assert controller.state.current_bid == 500_000

    async def test_raise_without_team_keeps_the_leader(self, controller):
        await controller.start()
        await controller.bid(team_id=1)

        state = await controller.bid(increment=200_000)

        assert state.leading_team_id == 1
        assert state.current_bid == 800_000

    async def test_raise_without_any_leader(self, controller):
        await controller.start()

        with pytest.raises(ValidationError):
            await controller.bid(increment=200_000)

    async def test_team_that_cannot_afford_is_rejected(self, controller):
        await controller.start()

        with pytest.raises(InsufficientFunds) as excinfo:
            await controller.bid(team_id=3)

        assert excinfo.value.attempted == 600_000
        assert excinfo.value.available == 550_000
        assert controller.state.leading_team_id is None
        assert controller.state.current_bid == 500_000

    async def test_unknown_team(self, controller):
        await controller.start()

        with pytest.raises(EntityNotFound):
            await controller.bid(team_id=42)

    async def test_bid_needs_a_staged_player(self, controller):
        with pytest.raises(ValidationError):
            await controller.bid(team_id=1)

    async def test_eligible_teams_follow_the_bid(self, controller):
        assert controller.eligible_team_ids() == []

        await controller.start()
        assert controller.eligible_team_ids() == [1, 2]

        await controller.bid(team_id=1)
        assert controller.eligible_team_ids() == [1]

    async def test_leading_team_is_resolved_from_the_cache(self, controller, publisher, cache):
        await controller.start()
        await controller.bid(team_id=2)

        assert publisher.snapshots[-1]['leadingTeam'] == cache.team(2)


class TestSell:

    async def test_sell_to_leader(self, controller, store, timer, sales, cache, publisher):
        await controller.start()
        await controller.bid(team_id=1, increment=200_000)

        assert await controller.sell() is True

        assert store.sales == [(10, 1, 700_000)]
        assert controller.state.phase == SOLD
        assert controller.state.is_sold is True
        assert timer.cancels == 1
        assert cache.refreshes == 1
        assert publisher.snapshots[-1]['isSold'] is True
        assert publisher.snapshots[-1]['stagedPlayer']['status'] == 'Sold'
        assert sales == [{
            'player': cache.player(10),
            'team': cache.team(1),
            'amount': 700_000,
            'newBudget': 1_300_000,
        }]

    async def test_sell_without_leader(self, controller, store):
        await controller.start()

        with pytest.raises(ValidationError):
            await controller.sell()
        assert store.sales == []

    async def test_sell_when_idle(self, controller):
        with pytest.raises(ValidationError):
            await controller.sell()

    async def test_second_sell_is_ignored(self, controller, store):
        await controller.start()
        await controller.bid(team_id=1)
        await controller.sell()

        assert await controller.sell() is False
        assert len(store.sales) == 1

    async def test_concurrent_sells_commit_once(self, controller, store, sales):
        await controller.start()
        await controller.bid(team_id=1)
        store.gate = asyncio.Event()

        first = asyncio.ensure_future(controller.sell())
        second = asyncio.ensure_future(controller.sell())
        await asyncio.sleep(0)
        assert controller.selling is True
        store.gate.set()
        results = await asyncio.gather(first, second)

        assert sorted(results) == [False, True]
        assert len(store.sales) == 1
        assert len(sales) == 1

    async def test_actions_are_refused_while_selling(self, controller, store):
        await controller.start()
        await controller.bid(team_id=1)
        store.gate = asyncio.Event()

        pending = asyncio.ensure_future(controller.sell())
        await asyncio.sleep(0)
        with pytest.raises(ValidationError):
            await controller.bid(team_id=2)
        with pytest.raises(ValidationError):
            await controller.pass_player()
        store.gate.set()
        assert await pending is True

    async def test_failed_sale_keeps_bidding(self, controller, store, cache, publisher, sales):
        await controller.start()
        await controller.bid(team_id=1)
        store.error = StorageFault('database is locked')
        published = len(publisher.snapshots)

        with pytest.raises(StorageFault):
            await controller.sell()

        assert controller.state.phase == BIDDING
        assert controller.state.is_sold is False
        assert controller.state.leading_team_id == 1
        assert controller.selling is False
        assert cache.refreshes == 1
        assert len(publisher.snapshots) == published + 1
        assert sales == []

    async def test_insufficient_funds_from_store_propagates(self, controller, store):
        await controller.start()
        await controller.bid(team_id=2)
        store.error = InsufficientFunds(600_000, 100_000)

        with pytest.raises(InsufficientFunds):
            await controller.sell()
        assert controller.state.phase == BIDDING


class TestPassAndAdvance:

    async def test_pass_returns_to_idle(self, controller, store, timer, publisher):
        await controller.start()
        await controller.bid(team_id=1)

        state = await controller.pass_player()

        assert store.passes == [10]
        assert state.phase == IDLE
        assert state.staged_player is None
        assert state.current_bid == 0
        assert timer.cancels == 1
        assert publisher.snapshots[-1]['stagedPlayer'] is None

    async def test_expiring_countdown_cannot_sell_a_player_being_passed(self, controller, store, cache, timer):
        await controller.start()
        await controller.bid(team_id=1)
        controller.state.countdown = 1
        store.pass_gate = asyncio.Event()

        pending = asyncio.ensure_future(controller.pass_player())
        await asyncio.sleep(0)
        assert timer.cancels == 1
        await controller.tick()
        assert await controller.sell() is False
        store.pass_gate.set()
        state = await pending

        assert store.sales == []
        assert store.passes == [10]
        assert state.phase == IDLE
        assert cache.player(10)['status'] == 'Unsold'

    async def test_failed_pass_keeps_bidding_and_the_clock(self, controller, store, timer):
        await controller.start()
        await controller.bid(team_id=1)
        store.error = StorageFault('database is locked')

        with pytest.raises(StorageFault):
            await controller.pass_player()

        assert controller.state.phase == BIDDING
        assert controller.state.leading_team_id == 1
        assert controller.selling is False
        assert timer.restarts == 2

    async def test_pass_needs_a_staged_player(self, controller):
        with pytest.raises(ValidationError):
            await controller.pass_player()

    async def test_advance_after_sale_stages_next_unsold(self, controller):
        await controller.start()
        await controller.bid(team_id=1)
        await controller.sell()

        state = await controller.advance()

        assert state.phase == BIDDING
        assert state.staged_player['name'] == 'Bumrah'
        assert state.leading_team_id is None
        assert state.is_sold is False
        assert state.countdown == 60

    async def test_advance_with_nothing_left_goes_idle(self, controller, cache):
        cache.players = [cache.player(10)]
        await controller.start()
        await controller.bid(team_id=1)
        await controller.sell()

        state = await controller.advance()

        assert state.phase == IDLE
        assert state.staged_player is None

    async def test_advance_before_sale(self, controller):
        await controller.start()

        with pytest.raises(ValidationError):
            await controller.advance()
        assert controller.state.phase == BIDDING

    async def test_advance_when_idle(self, controller):
        with pytest.raises(ValidationError):
            await controller.advance()


class TestTick:

    async def test_tick_counts_down(self, controller, publisher):
        await controller.start()
        published = len(publisher.snapshots)

        await controller.tick()

        assert controller.state.countdown == 59
        assert publisher.snapshots[-1]['countdown'] == 59
        assert len(publisher.snapshots) == published + 1

    async def test_expiry_sells_to_leader(self, controller, store, cache):
        cache.players.insert(0, player(13, 'Pant', 550_000))
        await controller.start()
        await controller.bid(team_id=1, increment=200_000)
        controller.state.countdown = 1

        await controller.tick()

        assert store.sales == [(13, 1, 750_000)]
        assert controller.state.phase == SOLD
        assert controller.state.countdown == 0

    async def test_expiry_without_leader_waits(self, controller, store):
        await controller.start()
        controller.state.countdown = 1

        await controller.tick()
        await controller.tick()

        assert controller.state.countdown == 0
        assert controller.state.phase == BIDDING
        assert store.sales == []

    async def test_bid_after_expiry_restarts_countdown(self, controller, store):
        await controller.start()
        controller.state.countdown = 1
        await controller.tick()

        await controller.bid(team_id=2)

        assert controller.state.countdown == 60
        assert store.sales == []

    async def test_tick_outside_bidding_does_nothing(self, controller, publisher):
        await controller.tick()

        assert publisher.snapshots == []


async def test_every_transition_publishes(controller, publisher):
    await controller.start()
    await controller.bid(team_id=1)
    await controller.tick()
    await controller.sell()
    await controller.advance()
    await controller.pass_player()
    await controller.refresh()

    assert len(publisher.snapshots) == 7
