import auction.models
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='Team',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('budget', models.PositiveIntegerField()),
                ('remaining_budget', models.PositiveIntegerField(db_column='remainingBudget')),
                ('logo', models.CharField(blank=True, max_length=500, null=True)),
            ],
            options={
                'db_table': 'teams',
                'ordering': ['id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('remaining_budget__gte', 0), ('remaining_budget__lte', models.F('budget'))),
                        name='team_remaining_budget_within_budget',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Player',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('role', models.CharField(choices=[('Batsman', 'Batsman'), ('Bowler', 'Bowler'), ('All-Rounder', 'All-Rounder'), ('Wicket Keeper', 'Wicket Keeper')], max_length=20)),
                ('style', models.CharField(blank=True, default='', max_length=200)),
                ('base_price', models.PositiveIntegerField(db_column='basePrice')),
                ('image', models.CharField(blank=True, max_length=500, null=True)),
                ('status', models.CharField(choices=[('Pending', 'Pending Approval'), ('Unsold', 'Unsold'), ('Sold', 'Sold')], default='Unsold', max_length=10)),
                ('sold_price', models.PositiveIntegerField(db_column='soldPrice', default=0)),
                ('sold_to_team', models.ForeignKey(blank=True, db_column='soldToTeamId', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='players', to='auction.team')),
            ],
            options={
                'db_table': 'players',
                'ordering': ['id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('status', 'Sold'), _negated=True),
                            models.Q(('sold_to_team__isnull', False), ('sold_price__gt', 0)),
                            _connector='OR',
                        ),
                        name='player_sold_has_team_and_price',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('role', models.CharField(choices=[('admin', 'Administrator')], default='admin', max_length=20)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'db_table': 'users',
            },
            managers=[
                ('objects', auction.models.UserManager()),
            ],
        ),
    ]
