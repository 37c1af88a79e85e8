"""Human-readable product and supplier codes.

Codes look like ``ZL-SUPP-8K2Q0D``: an initials prefix, a kind marker and
six random characters. Uniqueness is not checked against existing codes.
"""

import random
import re
import string

CODE_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 6
MAX_PREFIX_LENGTH = 4

CORPORATE_SUFFIXES = frozenset(
    {"INC", "INCORPORATED", "CORP", "CORPORATION", "LTD", "CO"}
)

_NON_ALPHA = re.compile(r"[^a-zA-Z ]")
_SYSTEM_RANDOM = random.SystemRandom()


def name_prefix(name: str, strip_suffixes: bool = False) -> str:
    """Initials of up to four words, letters only, uppercased.

    Args:
        name: Free-text product or company name
        strip_suffixes: Drop corporate suffixes (Inc, Corp, ...) first

    Returns:
        The prefix, or an empty string when no word has a letter
    """
    words = [w for w in _NON_ALPHA.sub("", name).split(" ") if w]
    if strip_suffixes:
        words = [w for w in words if w.upper() not in CORPORATE_SUFFIXES]
    return "".join(w[0].upper() for w in words)[:MAX_PREFIX_LENGTH]


def random_suffix(length: int = SUFFIX_LENGTH, rng: random.Random | None = None) -> str:
    """Characters drawn uniformly from [A-Z0-9]."""
    chooser = rng or _SYSTEM_RANDOM
    return "".join(chooser.choice(CODE_ALPHABET) for _ in range(length))


def generate_product_code(product_name: str, rng: random.Random | None = None) -> str:
    prefix = name_prefix(product_name) or "PROD"
    return f"{prefix}-PROD-{random_suffix(rng=rng)}"


def generate_supplier_code(company: str, rng: random.Random | None = None) -> str:
    prefix = name_prefix(company, strip_suffixes=True) or "COMP"
    return f"{prefix}-SUPP-{random_suffix(rng=rng)}"
