"""Rewards app config."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class RewardsConfig(AppConfig):
    name = "ledgerman.contrib.rewards"
    label = "ledgerman_rewards"
    verbose_name = _("Reward Catalog")
    default_auto_field = "django.db.models.BigAutoField"
