# auction/consumers.py
import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from . import engine
from .cache import AuctionDataCache
from .controller import AuctionController, AuctionRules, CountdownTimer
from .exceptions import AuctionError, ValidationError
from .utils import SnapshotPublisher, sync_group_name

logger = logging.getLogger(__name__)


def _optional_int(data, key):
    value = data.get(key)
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a whole number')


class AuctioneerConsumer(AsyncWebsocketConsumer):
    """
    The auctioneer's console. Each connection is one admin session with
    its own controller, data cache and countdown timer.

    Actions: start, bid, sell, pass, next, refresh.
    """

    async def connect(self):
        self.rules = AuctionRules.from_settings()
        self.cache = AuctionDataCache()
        self.controller = AuctionController(
            cache=self.cache,
            publisher=SnapshotPublisher(self.channel_layer),
            timer=CountdownTimer(self.on_tick, self.rules.tick_seconds),
            seller=database_sync_to_async(engine.sell_player),
            passer=database_sync_to_async(engine.pass_player),
            rules=self.rules,
            on_sold=self.announce_sale,
        )
        self.actions = {
            'start': self.start,
            'bid': self.bid,
            'sell': self.sell,
            'pass': self.pass_player,
            'next': self.advance,
            'refresh': self.refresh,
        }
        await self.accept()
        logger.info("Auctioneer session %s connected", self.channel_name)
        await self.cache.refresh()
        await self.send_state()

    async def disconnect(self, close_code):
        if hasattr(self, 'controller'):
            await self.controller.close()
        logger.info("Auctioneer session %s disconnected (%s)", self.channel_name, close_code)

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or '')
        except json.JSONDecodeError:
            await self.send_error(ValidationError('Invalid JSON data'))
            return
        if not isinstance(data, dict):
            await self.send_error(ValidationError('Expected a JSON object'))
            return

        handler = self.actions.get(data.get('action'))
        if handler is None:
            await self.send_error(ValidationError('Unknown action'))
            return
        await self.run(handler, data)

    async def run(self, handler, *args):
        try:
            await handler(*args)
        except AuctionError as exc:
            logger.info("Auctioneer action rejected: %s", exc.message)
            await self.send_error(exc)
        await self.send_state()

    # ============================================================
    # Actions
    # ============================================================

    async def start(self, data):
        await self.controller.start(_optional_int(data, 'player_id'))

    async def bid(self, data):
        await self.controller.bid(
            team_id=_optional_int(data, 'team_id'),
            increment=_optional_int(data, 'increment'),
        )

    async def sell(self, data):
        await self.controller.sell()

    async def pass_player(self, data):
        await self.controller.pass_player()

    async def advance(self, data):
        await self.controller.advance()

    async def refresh(self, data):
        await self.controller.refresh()

    async def on_tick(self):
        await self.run(self.controller.tick)

    # ============================================================
    # Outgoing messages
    # ============================================================

    async def announce_sale(self, sale):
        await self.send(text_data=json.dumps({
            'type': 'sold',
            'data': sale,
        }))

    async def send_error(self, exc):
        await self.send(text_data=json.dumps({
            'type': 'error',
            'code': exc.code,
            'message': exc.message,
        }))

    async def send_state(self):
        controller = self.controller
        data = controller.state.snapshot(self.cache)
        data.update({
            'phase': controller.state.phase,
            'eligibleTeamIds': controller.eligible_team_ids(),
            'unsoldCount': len(self.cache.unsold_players()),
            'quickIncrements': list(self.rules.quick_increments),
            'selling': controller.selling,
            'error': self.cache.error,
        })
        await self.send(text_data=json.dumps({
            'type': 'state',
            'data': data,
        }))


class ProjectorConsumer(AsyncWebsocketConsumer):
    """
    Read-only projector screen: replaces its whole display with each
    snapshot received. Nothing is replayed on connect.
    """

    async def connect(self):
        self.room_group_name = sync_group_name()
        await self.channel_layer.group_add(
            self.room_group_name,
            self.channel_name
        )
        await self.accept()

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(
            self.room_group_name,
            self.channel_name
        )

    async def receive(self, text_data=None, bytes_data=None):
        await self.send(text_data=json.dumps({
            'type': 'error',
            'code': ValidationError.code,
            'message': 'The projector view is read-only',
        }))

    async def auction_snapshot(self, event):
        await self.send(text_data=json.dumps({
            'type': 'UPDATE',
            'payload': event['snapshot']
        }))
