import re
import unicodedata

# Shortnames appear in URLs: ASCII letters, digits, dash and underscore
VALID_URL_COMPONENT_REGEXP = re.compile(r"\A[A-Za-z0-9_\-]+\Z")


def normalize_name(name: str) -> str:
    """Lowercase ASCII slug with runs of non-alphanumerics collapsed to "_"."""
    nfkd = unicodedata.normalize("NFKD", name)
    only_ascii = "".join(c for c in nfkd if not unicodedata.combining(c))
    cleaned = "".join(ch if ch.isascii() and ch.isalnum() else "_" for ch in only_ascii.lower())
    cleaned = "_".join(filter(None, cleaned.split("_")))
    return cleaned


def is_url_component(value: str) -> bool:
    return bool(value) and VALID_URL_COMPONENT_REGEXP.match(value) is not None
