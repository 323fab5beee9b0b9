"""Enums and type aliases for FitCoach."""

from enum import StrEnum


class Role(StrEnum):
    CLIENT = "client"
    TRAINER = "trainer"
    SUPER_ADMIN = "super_admin"


class SubscriptionStatus(StrEnum):
    TRIALING = "trialing"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELED = "canceled"


class DecisionKind(StrEnum):
    ALLOW = "allow"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    REDIRECT_TO_DASHBOARD = "redirect_to_dashboard"
    REDIRECT_TO_BILLING = "redirect_to_billing"


class TonnagePeriod(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
