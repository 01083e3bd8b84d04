"""
Input validation for site requests.

Each check returns a list of problems; callers collect them all and raise a
single ValidationError so the operator sees every mistake at once.
Non-fatal findings are logged as warnings.
"""

import re
from typing import List

from wpsite.core.errors import ValidationError
from wpsite.logging import get_logger

logger = get_logger(__name__)

MIN_SITE_NAME_LENGTH = 2
MAX_SITE_NAME_LENGTH = 63
MAX_DB_NAME_LENGTH = 64
MAX_USERNAME_LENGTH = 32
MIN_PASSWORD_LENGTH = 4

RESERVED_SITE_NAMES = frozenset({
    "localhost", "www", "admin", "root", "mysql", "apache", "api",
    "test", "dev", "staging", "production", "backup", "temp",
})
RESERVED_DB_NAMES = frozenset({
    "mysql", "information_schema", "performance_schema", "sys", "test",
})
RESERVED_USERNAMES = frozenset({
    "root", "admin", "administrator", "mysql", "apache", "www-data",
})
WEAK_PASSWORDS = frozenset({"password", "1234", "admin", "root", "mysql"})

SITE_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]*$")
IDENTIFIER_RE = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_RE = re.compile(r"^[^@]+@[^@]+\.[^@]+$")
EMAIL_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


def sanitize(value: str) -> str:
    """Trim whitespace and drop control characters."""
    return CONTROL_CHARS_RE.sub("", value.strip())


def check_site_name(site_name: str) -> List[str]:
    if not site_name.strip():
        return ["Site name cannot be empty"]

    if not MIN_SITE_NAME_LENGTH <= len(site_name) <= MAX_SITE_NAME_LENGTH:
        return [
            f"Site name must be {MIN_SITE_NAME_LENGTH}-{MAX_SITE_NAME_LENGTH} "
            f"characters long"
        ]

    if not SITE_NAME_RE.match(site_name):
        return [
            "Site name must start with alphanumeric character and contain only "
            "letters, numbers, hyphens, and underscores"
        ]

    if site_name in RESERVED_SITE_NAMES:
        return [f"Site name '{site_name}' is reserved and cannot be used"]

    if site_name[0].isdigit():
        logger.warning("Site name starts with a number, which may cause issues")
    if site_name.endswith("_"):
        logger.warning("Site name ends with underscores, which may cause issues")
    if site_name.endswith("-"):
        logger.warning("Site name ends with hyphens, which may cause issues")

    return []


def check_database_name(db_name: str) -> List[str]:
    if not db_name.strip():
        return ["Database name cannot be empty"]

    if len(db_name) > MAX_DB_NAME_LENGTH:
        return [f"Database name must be {MAX_DB_NAME_LENGTH} characters or less"]

    if not IDENTIFIER_RE.match(db_name):
        return ["Database name must contain only letters, numbers, and underscores"]

    if db_name in RESERVED_DB_NAMES:
        return [f"Database name '{db_name}' is reserved by MySQL"]

    if db_name[0].isdigit():
        logger.warning("Database name starts with a number, which may cause issues")

    return []


def check_username(username: str, label: str = "Username") -> List[str]:
    if not username.strip():
        return [f"{label} cannot be empty"]

    if len(username) > MAX_USERNAME_LENGTH:
        return [f"{label} must be {MAX_USERNAME_LENGTH} characters or less"]

    if not IDENTIFIER_RE.match(username):
        return [f"{label} must contain only letters, numbers, and underscores"]

    if username in RESERVED_USERNAMES:
        return [f"{label} '{username}' is reserved and cannot be used"]

    if username[0].isdigit():
        logger.warning("%s starts with a number, which may cause issues", label)

    return []


def check_password(password: str, label: str = "Password") -> List[str]:
    if not password.strip():
        return [f"{label} cannot be empty"]

    if len(password) < MIN_PASSWORD_LENGTH:
        return [f"{label} must be at least {MIN_PASSWORD_LENGTH} characters long"]

    if password in WEAK_PASSWORDS:
        logger.warning("%s is very weak and easily guessable", label)
    elif password.isdigit():
        logger.warning("%s contains only numbers", label)
    elif password.isalpha() and password.isascii():
        logger.warning("%s contains only letters", label)

    return []


def check_email(email: str) -> List[str]:
    if not email.strip():
        return ["Email cannot be empty"]

    if not EMAIL_RE.match(email):
        return ["Invalid email format (must contain @ and domain)"]
    if ".." in email:
        return ["Email contains consecutive dots"]
    if email.startswith("."):
        return ["Email cannot start with a dot"]
    if email.endswith("."):
        return ["Email cannot end with a dot"]

    domain = email.split("@", 1)[1]
    if not EMAIL_DOMAIN_RE.match(domain):
        return ["Invalid domain format in email"]

    return []


def check_site_parameters(
    site_id: str,
    admin_user: str,
    admin_password: str,
    admin_email: str,
    db_name: str,
    db_user: str,
    db_password: str,
) -> List[str]:
    """Validate every creation parameter and return all problems found."""
    problems: List[str] = []
    problems += check_site_name(site_id)
    problems += check_username(admin_user, "Admin username")
    problems += check_password(admin_password, "Admin password")
    problems += check_email(admin_email)
    problems += check_database_name(db_name)
    problems += check_username(db_user, "Database username")
    problems += check_password(db_password, "Database password")

    if admin_user == db_user:
        logger.warning("Admin username and database username are the same")
    if admin_password == db_password:
        logger.warning("Admin password and database password are the same")
    if site_id == db_name:
        logger.warning("Site name and database name are the same")

    return problems


def validate_removal(site_id: str, db_name: str, db_user: str) -> None:
    """
    Validate removal parameters.

    Raises:
        ValidationError: If any parameter is malformed
    """
    problems: List[str] = []
    problems += check_site_name(site_id)
    problems += check_database_name(db_name)
    problems += check_username(db_user, "Database username")

    if problems:
        raise ValidationError(problems)
