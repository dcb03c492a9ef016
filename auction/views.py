import json
import logging
import time
from functools import wraps

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core import signing
from django.core.files.storage import default_storage
from django.db import DatabaseError, IntegrityError
from django.http import JsonResponse
from django.utils.text import get_valid_filename
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from . import engine
from .exceptions import AuctionError, AuthenticationFailed, EntityNotFound, StorageFault, ValidationError
from .forms import LoginForm, PlayerForm, PlayerUpdateForm, SaleForm, SignupForm, TeamForm, invalid
from .models import Player, Team

logger = logging.getLogger(__name__)
User = get_user_model()

TOKEN_SALT = 'auction.auth'


def api_view(*methods):
    """
    JSON endpoint: CSRF exempt, restricted to ``methods``, and every
    AuctionError rendered as ``{"success": false, "error", "code"}``.
    """
    def decorator(view):
        @csrf_exempt
        @require_http_methods(list(methods))
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except AuctionError as exc:
                return JsonResponse(exc.as_dict(), status=exc.status)
            except DatabaseError as exc:
                logger.exception("Storage error in %s", request.path)
                fault = StorageFault(str(exc))
                return JsonResponse(fault.as_dict(), status=fault.status)
        return wrapper
    return decorator


def read_json(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError('Invalid JSON data')
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON object')
    return data


def read_payload(request):
    """JSON body, or form fields when the request is multipart."""
    if request.content_type == 'multipart/form-data':
        return request.POST, request.FILES
    return read_json(request), None


def save_upload(request, upload):
    name = default_storage.save(f"{int(time.time() * 1000)}-{get_valid_filename(upload.name)}", upload)
    return request.build_absolute_uri(settings.MEDIA_URL + name)


# ========================================
# TEAMS
# ========================================

@api_view('GET', 'POST')
def teams(request):
    if request.method == 'POST':
        form = TeamForm(read_json(request))
        if not form.is_valid():
            raise invalid(form)
        team = form.save()
        logger.info("Team %s created with budget %s", team.name, team.budget)
        return JsonResponse(team.as_dict(player_ids=[]), status=201)

    team_list = Team.objects.prefetch_related('players')
    return JsonResponse([team.as_dict() for team in team_list], safe=False)


@api_view('DELETE')
def team_detail(request, team_id):
    engine.delete_team(team_id)
    return JsonResponse({'success': True})


# ========================================
# PLAYERS
# ========================================

@api_view('GET', 'POST')
def players(request):
    if request.method == 'POST':
        data, files = read_payload(request)
        form = PlayerForm(data, files)
        if not form.is_valid():
            raise invalid(form)
        upload = form.cleaned_data.get('imageFile')
        image_url = save_upload(request, upload) if upload else None
        player = form.save(image_url=image_url)
        logger.info("Player %s created (%s)", player.name, player.status)
        return JsonResponse(player.as_dict(), status=201)

    return JsonResponse([player.as_dict() for player in Player.objects.all()], safe=False)


@api_view('PUT', 'DELETE')
def player_detail(request, player_id):
    if request.method == 'DELETE':
        engine.delete_player(player_id)
        return JsonResponse({'success': True})

    form = PlayerUpdateForm(read_json(request))
    if not form.is_valid():
        raise invalid(form)
    changes = engine.update_player(player_id, form.to_update())
    return JsonResponse({'success': True, 'changes': changes})


# ========================================
# AUCTION
# ========================================

@api_view('POST')
def sell(request):
    form = SaleForm(read_json(request))
    if not form.is_valid():
        raise invalid(form)
    new_budget = engine.sell_player(
        form.cleaned_data['playerId'],
        form.cleaned_data['teamId'],
        form.cleaned_data['amount'],
    )
    return JsonResponse({'success': True, 'newBudget': new_budget})


@api_view('GET')
def summary(request):
    return JsonResponse(engine.auction_summary())


# ========================================
# AUTH
# ========================================

@api_view('POST')
def signup(request):
    form = SignupForm(read_json(request))
    if not form.is_valid():
        raise invalid(form)
    try:
        user = form.save()
    except IntegrityError:
        raise ValidationError('Email already exists')
    logger.info("User %s signed up", user.email)
    return JsonResponse({'id': user.id, 'email': user.email, 'success': True})


@api_view('POST')
def login(request):
    """
    Check credentials and hand back a signed token. Nothing verifies the
    token yet; every endpoint stays open.
    """
    form = LoginForm(read_json(request))
    if not form.is_valid():
        raise invalid(form)

    email = User.objects.normalize_email(form.cleaned_data['email'])
    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        raise EntityNotFound('User', email)
    if not user.check_password(form.cleaned_data['password']):
        raise AuthenticationFailed('Invalid password')

    token = signing.dumps({'id': user.id, 'role': user.role}, salt=TOKEN_SALT)
    return JsonResponse({**user.as_dict(), 'token': token})


def not_found(request, path=''):
    return JsonResponse({'success': False, 'error': 'API endpoint not found', 'code': 'not_found'}, status=404)
