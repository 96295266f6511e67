"""
notify/templates.py -- HTML bodies for account mails.

All interpolated values pass through html.escape(). Names come from the
registration form and are untrusted.
"""

from __future__ import annotations

import html

WELCOME_SUBJECT = "Verify your account"
VERIFIED_SUBJECT = "Your account is verified"


def welcome_email(first_name: str, code: str) -> str:
    """Registration mail carrying the one-time verification code."""
    name = html.escape(first_name or "there")
    return (
        f"<h2>Welcome, {name}!</h2>"
        "<p>Thanks for registering. Use the code below to verify your email address:</p>"
        f'<p style="font-size:24px;letter-spacing:4px"><strong>{html.escape(code)}</strong></p>'
        "<p>The code can be used once. If you did not create this account, ignore this message.</p>"
    )


def verified_email(first_name: str) -> str:
    name = html.escape(first_name or "there")
    return (
        f"<h2>Hi {name},</h2>"
        "<p>Your email address has been verified. Your account is now fully active.</p>"
    )
