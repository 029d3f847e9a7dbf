import re
from typing import Optional

RESERVED_SLUGS = frozenset([
    "www", "api", "admin", "mail", "smtp", "ftp", "ns1", "ns2", "cdn", "assets",
    "static", "app", "dashboard", "login", "register", "signup", "signin",
    "logout", "auth", "account", "settings", "profile", "clinic", "clinics",
    "doctor", "doctors", "dentist", "dentists", "pharmacist", "pharmacists",
    "patient", "patients", "search", "browse", "home", "about", "contact",
    "privacy", "terms", "help", "support", "blog", "news", "faq", "sitemap",
    "robots", "feed", "rss", "test", "staging", "dev", "demo", "status", "health",
])

SLUG_REGEX = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 40


def is_reserved_slug(slug: str) -> bool:
    return slug.lower() in RESERVED_SLUGS


def validate_slug(slug: Optional[str]) -> Optional[str]:
    """Returns an error message, or None when the slug is usable."""
    if not slug:
        return "Subdomain is required"
    if len(slug) < SLUG_MIN_LENGTH:
        return f"Subdomain must be at least {SLUG_MIN_LENGTH} characters"
    if len(slug) > SLUG_MAX_LENGTH:
        return f"Subdomain must be at most {SLUG_MAX_LENGTH} characters"
    if not SLUG_REGEX.match(slug):
        return "Only lowercase letters, numbers, and hyphens allowed. Cannot start or end with a hyphen."
    if is_reserved_slug(slug):
        return "This subdomain is reserved"
    return None
