"""
E-mail checks for role-based sign-up.

Employers must register with a company address; candidates may use any
address. Everything here is pure: no network, no database.
"""
import re

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

FREE_EMAIL_PROVIDERS = frozenset([
    "gmail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "live.com",
    "icloud.com",
    "aol.com",
    "protonmail.com",
    "proton.me",
    "mail.com",
    "gmx.com",
    "yandex.com",
    "zoho.com",
    "tutanota.com",
    "fastmail.com",
    "hushmail.com",
    "inbox.com",
    "me.com",
    "mac.com",
])


def get_email_domain(email) -> str:
    """Lower-cased domain part of an address, or an empty string."""
    if not email or not isinstance(email, str):
        return ""

    parts = email.split("@")
    if len(parts) < 2:
        return ""
    return parts[1].strip().lower()


def is_valid_email_format(email) -> bool:
    if not email or not isinstance(email, str):
        return False
    return EMAIL_REGEX.match(email) is not None


def is_free_email_provider(email) -> bool:
    domain = get_email_domain(email)
    if not domain:
        return False
    return domain in FREE_EMAIL_PROVIDERS


def is_company_email(email) -> bool:
    """True for a well-formed address outside the free-provider list."""
    if not is_valid_email_format(email):
        return False
    return not is_free_email_provider(email)


def get_company_email_error_message(email) -> str:
    """User-facing explanation of why ``email`` is not accepted for an employer."""
    if not email:
        return "Email address is required"

    if not is_valid_email_format(email):
        return "Please enter a valid email address"

    if is_free_email_provider(email):
        domain = get_email_domain(email)
        return (
            f"Personal email addresses ({domain}) are not accepted for employer accounts. "
            "Please use your company email (e.g., you@yourcompany.com)"
        )

    return "Invalid email address"
