from django.urls import path

from . import consumers

websocket_urlpatterns = [
    path('ws/auction/control/', consumers.AuctioneerConsumer.as_asgi()),
    path('ws/auction/projector/', consumers.ProjectorConsumer.as_asgi()),
]
