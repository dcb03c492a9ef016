# auction/admin.py
from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html

from . import engine
from .exceptions import AuctionError
from .models import User, Team, Player


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    ordering = ['email']
    list_display = ['email', 'role', 'is_staff', 'is_active']
    list_filter = ['role', 'is_staff', 'is_active']
    search_fields = ['email']

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Role', {'fields': ('role',)}),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'role'),
        }),
    )


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ['name', 'budget', 'remaining_budget', 'purse_spent', 'players_count', 'logo_display']
    search_fields = ['name']
    readonly_fields = ['purse_spent']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'logo')
        }),
        ('Financial Details', {
            'fields': ('budget', 'remaining_budget', 'purse_spent')
        }),
    )

    def purse_spent(self, obj):
        return f"₹{obj.spent()}"
    purse_spent.short_description = 'Purse Spent'

    def players_count(self, obj):
        return obj.players.count()
    players_count.short_description = 'Players'

    def logo_display(self, obj):
        if obj.logo:
            return format_html('<img src="{}" width="40" height="40" style="border-radius: 50%; object-fit: cover;" />', obj.logo)
        return '-'
    logo_display.short_description = 'Logo'


@admin.register(Player)
class PlayerAdmin(admin.ModelAdmin):
    list_display = ['name', 'role', 'style', 'status', 'base_price', 'sold_price', 'sold_to_team']
    list_filter = ['status', 'role', 'sold_to_team']
    search_fields = ['name', 'style']
    # sale fields only change through the sale transaction
    readonly_fields = ['status', 'sold_price', 'sold_to_team']
    actions = ['approve_players', 'pass_players']

    fieldsets = (
        ('Player Information', {
            'fields': ('name', 'role', 'style', 'base_price', 'image')
        }),
        ('Auction Status', {
            'fields': ('status', 'sold_price', 'sold_to_team')
        }),
    )

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.is_sold:
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        engine.delete_player(obj.id)

    def delete_queryset(self, request, queryset):
        for player in queryset:
            try:
                engine.delete_player(player.id)
            except AuctionError as exc:
                self.message_user(request, f'{player.name}: {exc.message}', messages.ERROR)

    def _apply(self, request, queryset, update, verb):
        done = 0
        for player in queryset:
            try:
                done += engine.update_player(player.id, update)
            except AuctionError as exc:
                self.message_user(request, f'{player.name}: {exc.message}', messages.ERROR)
        if done:
            self.message_user(request, f'{done} player(s) {verb}.', messages.SUCCESS)

    @admin.action(description='Approve selected pending registrations')
    def approve_players(self, request, queryset):
        pending = queryset.filter(status=Player.Status.PENDING)
        self._apply(request, pending, engine.PlayerUpdate(status=Player.Status.UNSOLD), 'approved')

    @admin.action(description='Pass selected players (leave Unsold)')
    def pass_players(self, request, queryset):
        self._apply(request, queryset, engine.PlayerUpdate(status=Player.Status.UNSOLD), 'passed')
