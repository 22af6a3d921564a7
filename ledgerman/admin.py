"""Ledgerman admin (CORE only).

Balances and journal entries are read-only here: every change goes through
ledgerman.services.ledger. Reward models have their own admin in
ledgerman.contrib.rewards.admin.
"""

from django.contrib import admin
from django.utils.html import format_html

from ledgerman.models import AuditLog, JournalEntry, LedgerAccount


# ===========================================
# Inline Classes
# ===========================================


class JournalEntryInline(admin.TabularInline):
    model = JournalEntry
    extra = 0
    fields = ["kind", "delta", "balance_after", "source", "reference", "created_at"]
    readonly_fields = ["kind", "delta", "balance_after", "source", "reference", "created_at"]
    ordering = ["-created_at", "-id"]
    max_num = 20
    verbose_name_plural = "Journal (latest 20)"

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# LedgerAccount Admin
# ===========================================


@admin.register(LedgerAccount)
class LedgerAccountAdmin(admin.ModelAdmin):
    list_display = [
        "user_id",
        "kind",
        "balance",
        "lifetime_inflow",
        "tier_badge",
        "tier_points",
        "is_active",
        "updated_at",
    ]
    list_filter = ["kind", "tier", "is_active"]
    search_fields = ["user_id"]
    readonly_fields = [
        "user_id",
        "kind",
        "balance",
        "lifetime_inflow",
        "tier",
        "tier_points",
        "version",
        "created_at",
        "updated_at",
    ]
    inlines = [JournalEntryInline]

    fieldsets = [
        (None, {"fields": ["user_id", "kind", "is_active"]}),
        ("Balance", {"fields": ["balance", "lifetime_inflow"]}),
        ("Tier", {"fields": ["tier", "tier_points"]}),
        ("System", {"fields": ["version", "created_at", "updated_at"], "classes": ["collapse"]}),
    ]

    def tier_badge(self, obj):
        colors = {
            "bronze": "#cd7f32",
            "silver": "#c0c0c0",
            "gold": "#ffd700",
            "platinum": "#e5e4e2",
            "diamond": "#b9f2ff",
        }
        return format_html(
            '<span style="background:{}; color:#000; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            colors.get(obj.tier, "#6c757d"),
            obj.get_tier_display(),
        )

    tier_badge.short_description = "Tier"

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# JournalEntry Admin
# ===========================================


@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = [
        "account_link",
        "kind",
        "delta_display",
        "balance_after",
        "source",
        "reference",
        "created_at",
    ]
    list_filter = ["kind", "source", "account__kind"]
    search_fields = ["account__user_id", "reference", "description"]
    date_hierarchy = "created_at"
    readonly_fields = [
        "account",
        "delta",
        "kind",
        "balance_after",
        "source",
        "reference",
        "description",
        "expires_at",
        "metadata",
        "created_at",
        "created_by",
    ]

    def account_link(self, obj):
        from django.urls import reverse

        url = reverse("admin:ledgerman_ledgeraccount_change", args=[obj.account_id])
        return format_html('<a href="{}">{}</a>', url, obj.account)

    account_link.short_description = "Account"

    def delta_display(self, obj):
        color = "green" if obj.delta > 0 else "red"
        return format_html('<span style="color: {};">{}</span>', color, f"{obj.delta:+,}")

    delta_display.short_description = "Delta"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# AuditLog Admin
# ===========================================


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ["action", "actor_id", "target_type", "target_id", "description", "created_at"]
    list_filter = ["action", "target_type"]
    search_fields = ["actor_id", "target_id", "description"]
    date_hierarchy = "created_at"
    readonly_fields = [
        "action",
        "actor_id",
        "target_type",
        "target_id",
        "description",
        "metadata",
        "created_at",
    ]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
