"""
Broadcasting auction snapshots to projector screens over the channel layer.
"""
import logging

from channels.exceptions import ChannelFull
from channels.layers import get_channel_layer
from django.conf import settings

logger = logging.getLogger(__name__)


def sync_group_name():
    """The one well-known group every projector joins."""
    return settings.AUCTION['SYNC_GROUP']


class SnapshotPublisher:
    """
    Last snapshot wins: no sequence numbers, no history, no acknowledgement.
    A projector that connects late sees nothing until the next publish.

    Usage:
        publisher = SnapshotPublisher()
        await publisher.publish(state.snapshot(cache))
    """

    def __init__(self, channel_layer=None, group=None):
        self.channel_layer = channel_layer or get_channel_layer()
        self.group = group or sync_group_name()

    async def publish(self, snapshot):
        try:
            await self.channel_layer.group_send(
                self.group,
                {
                    'type': 'auction.snapshot',
                    'snapshot': snapshot,
                }
            )
        except ChannelFull:
            logger.warning("Snapshot dropped: channel layer full for group %s", self.group)
