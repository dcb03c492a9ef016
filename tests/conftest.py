import pytest

from auction.models import Player, Team


@pytest.fixture(autouse=True)
def auction_settings(settings, tmp_path):
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    settings.CHANNEL_LAYERS = {'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'}}
    settings.MEDIA_ROOT = tmp_path / 'uploads'
    settings.AUCTION = {
        **settings.AUCTION,
        'COUNTDOWN': 60,
        # keep the real timer quiet; tests drive ticks by hand
        'TICK_SECONDS': 3600,
    }
    return settings


@pytest.fixture
def make_team(db):
    def make(name='Chennai Kings', budget=1_000_000, remaining=None, logo=None):
        return Team.objects.create(
            name=name,
            budget=budget,
            remaining_budget=budget if remaining is None else remaining,
            logo=logo,
        )
    return make


@pytest.fixture
def make_player(db):
    def make(name='Virat', role=Player.Role.BATSMAN, base_price=200_000, status=Player.Status.UNSOLD, style=''):
        return Player.objects.create(
            name=name,
            role=role,
            base_price=base_price,
            status=status,
            style=style,
        )
    return make
