# auction/forms.py - request validation for the JSON API
from django import forms
from django.contrib.auth import get_user_model

from .engine import PlayerUpdate
from .exceptions import ValidationError
from .models import Player, Team

User = get_user_model()


def invalid(form):
    """Turn a bound, invalid form into the API's ValidationError."""
    errors = {field: [str(error) for error in field_errors] for field, field_errors in form.errors.items()}
    first_field, first_errors = next(iter(errors.items()))
    if first_field == '__all__':
        message = first_errors[0]
    else:
        message = f'{first_field}: {first_errors[0]}'
    return ValidationError(message, errors)


class TeamForm(forms.Form):
    name = forms.CharField(max_length=100)
    budget = forms.IntegerField(min_value=1)
    logo = forms.CharField(max_length=500, required=False)

    def save(self):
        budget = self.cleaned_data['budget']
        return Team.objects.create(
            name=self.cleaned_data['name'],
            budget=budget,
            remaining_budget=budget,
            logo=self.cleaned_data['logo'] or None,
        )


class PlayerForm(forms.Form):
    # Sold is only reachable through a sale
    CREATE_STATUSES = [
        (Player.Status.UNSOLD, 'Unsold'),
        (Player.Status.PENDING, 'Pending'),
    ]

    name = forms.CharField(max_length=200)
    role = forms.ChoiceField(choices=Player.Role.choices)
    style = forms.CharField(max_length=200, required=False)
    basePrice = forms.IntegerField(min_value=0)
    image = forms.CharField(max_length=500, required=False)
    status = forms.ChoiceField(choices=CREATE_STATUSES, required=False)
    imageFile = forms.FileField(required=False)

    def save(self, image_url=None):
        data = self.cleaned_data
        return Player.objects.create(
            name=data['name'],
            role=data['role'],
            style=data['style'] or '',
            base_price=data['basePrice'],
            image=image_url or data['image'] or None,
            status=data['status'] or Player.Status.UNSOLD,
        )


class PlayerUpdateForm(forms.Form):
    status = forms.ChoiceField(choices=Player.Status.choices, required=False)
    style = forms.CharField(max_length=200, required=False)
    soldPrice = forms.IntegerField(min_value=0, required=False)
    soldToTeamId = forms.IntegerField(required=False)

    def _supplied(self, key):
        return key in self.data

    def to_update(self):
        data = self.cleaned_data
        values = {}
        # blank status/style mean "not supplied"
        if data.get('status'):
            values['status'] = data['status']
        if data.get('style'):
            values['style'] = data['style']
        if self._supplied('soldPrice'):
            values['sold_price'] = data['soldPrice'] or 0
        if self._supplied('soldToTeamId'):
            values['sold_to_team_id'] = data['soldToTeamId']
        return PlayerUpdate(**values)


class SaleForm(forms.Form):
    playerId = forms.IntegerField()
    teamId = forms.IntegerField()
    amount = forms.IntegerField(min_value=1)


class SignupForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField()

    def clean_email(self):
        email = User.objects.normalize_email(self.cleaned_data['email'])
        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError('Email already exists')
        return email

    def save(self):
        return User.objects.create_user(
            email=self.cleaned_data['email'],
            password=self.cleaned_data['password'],
        )


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField()
