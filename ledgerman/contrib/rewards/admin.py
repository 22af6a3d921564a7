"""Rewards admin."""

from django.contrib import admin
from django.utils.html import format_html

from ledgerman.contrib.rewards.models import Reward, RewardRedemption, RewardStatus


class RewardRedemptionInline(admin.TabularInline):
    model = RewardRedemption
    extra = 0
    fields = ["code", "user_id", "points_spent", "created_at"]
    readonly_fields = ["code", "user_id", "points_spent", "created_at"]
    ordering = ["-created_at"]
    max_num = 20

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Reward)
class RewardAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "reward_type",
        "points_required",
        "stock",
        "status_badge",
        "valid_until",
        "merchant_id",
    ]
    list_filter = ["reward_type", "status"]
    search_fields = ["name", "merchant_id"]
    readonly_fields = ["redeemed_count", "created_at", "updated_at"]
    inlines = [RewardRedemptionInline]

    def stock(self, obj):
        if obj.quantity is None:
            return "unlimited"
        return f"{obj.redeemed_count}/{obj.quantity}"

    stock.short_description = "Redeemed"

    def status_badge(self, obj):
        colors = {
            RewardStatus.ACTIVE: "#28a745",
            RewardStatus.EXHAUSTED: "#fd7e14",
            RewardStatus.INACTIVE: "#6c757d",
        }
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            colors.get(obj.status, "#6c757d"),
            obj.get_status_display(),
        )

    status_badge.short_description = "Status"


@admin.register(RewardRedemption)
class RewardRedemptionAdmin(admin.ModelAdmin):
    list_display = ["code", "reward", "user_id", "points_spent", "created_at"]
    list_filter = ["reward__reward_type"]
    search_fields = ["code", "user_id", "reward__name"]
    readonly_fields = ["reward", "user_id", "code", "points_spent", "journal_entry", "created_at"]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
