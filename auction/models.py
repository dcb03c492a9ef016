from django.db import models
from django.db.models import F, Q
from django.contrib.auth.models import AbstractUser, BaseUserManager


class UserManager(BaseUserManager):
    """Email is the login identifier; there is no username."""

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('The email must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    ROLES = (
        ('admin', 'Administrator'),
    )

    username = None
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=ROLES, default='admin')

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.email

    def as_dict(self):
        return {'id': self.id, 'email': self.email, 'role': self.role}


class Team(models.Model):
    name = models.CharField(max_length=100)
    budget = models.PositiveIntegerField()
    remaining_budget = models.PositiveIntegerField(db_column='remainingBudget')
    logo = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        db_table = 'teams'
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=Q(remaining_budget__gte=0) & Q(remaining_budget__lte=F('budget')),
                name='team_remaining_budget_within_budget',
            ),
        ]

    def __str__(self):
        return self.name

    def spent(self):
        return self.budget - self.remaining_budget

    def as_dict(self, player_ids=None):
        if player_ids is None:
            player_ids = [player.id for player in self.players.all()]
        return {
            'id': self.id,
            'name': self.name,
            'budget': self.budget,
            'remainingBudget': self.remaining_budget,
            'logo': self.logo,
            'players': player_ids,
        }


class Player(models.Model):
    class Role(models.TextChoices):
        BATSMAN = 'Batsman', 'Batsman'
        BOWLER = 'Bowler', 'Bowler'
        ALL_ROUNDER = 'All-Rounder', 'All-Rounder'
        WICKET_KEEPER = 'Wicket Keeper', 'Wicket Keeper'

    class Status(models.TextChoices):
        PENDING = 'Pending', 'Pending Approval'
        UNSOLD = 'Unsold', 'Unsold'
        SOLD = 'Sold', 'Sold'

    name = models.CharField(max_length=200)
    role = models.CharField(max_length=20, choices=Role.choices)
    style = models.CharField(max_length=200, blank=True, default='')
    base_price = models.PositiveIntegerField(db_column='basePrice')
    image = models.CharField(max_length=500, blank=True, null=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.UNSOLD)
    sold_price = models.PositiveIntegerField(default=0, db_column='soldPrice')
    sold_to_team = models.ForeignKey(
        Team,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='players',
        db_column='soldToTeamId',
    )

    class Meta:
        db_table = 'players'
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=~Q(status='Sold') | (Q(sold_to_team__isnull=False) & Q(sold_price__gt=0)),
                name='player_sold_has_team_and_price',
            ),
        ]

    def __str__(self):
        return f"{self.name} - {self.role}"

    @property
    def is_sold(self):
        return self.status == self.Status.SOLD

    def as_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role,
            'style': self.style,
            'basePrice': self.base_price,
            'image': self.image,
            'status': self.status,
            'soldPrice': self.sold_price,
            'soldToTeamId': self.sold_to_team_id,
        }
