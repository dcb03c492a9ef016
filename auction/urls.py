from django.urls import path, re_path

from . import views

urlpatterns = [
    # Teams
    path('teams', views.teams, name='teams'),
    path('teams/<int:team_id>', views.team_detail, name='team_detail'),

    # Players
    path('players', views.players, name='players'),
    path('players/<int:player_id>', views.player_detail, name='player_detail'),

    # Auction
    path('auction/sell', views.sell, name='auction_sell'),
    path('summary', views.summary, name='summary'),

    # Auth
    path('auth/signup', views.signup, name='signup'),
    path('auth/login', views.login, name='login'),

    re_path(r'^(?P<path>.*)$', views.not_found),
]
