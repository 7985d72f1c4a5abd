"""Prometheus counters for the account lifecycle."""

from __future__ import annotations

from prometheus_client import Counter

REGISTRATIONS = Counter(
    "identity_registrations_total",
    "Registration attempts by outcome.",
    ["outcome"],
)
VERIFICATIONS = Counter(
    "identity_verifications_total",
    "Verification token redemptions by outcome.",
    ["outcome"],
)
LOGINS = Counter(
    "identity_logins_total",
    "Login attempts by outcome.",
    ["outcome"],
)
