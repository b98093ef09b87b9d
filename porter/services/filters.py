"""Column filters applied while normalizing rows."""

import html
import logging
import re
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Optional

from dateutil import parser as date_parser

from ..exceptions import UnknownFilter

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

TRUE_VALUES = ("1", "y", "yes", "true", "on", "t")

_TAG_RE = re.compile(r"<[^>]*>")

Filter = Callable[..., Any]


class FilterEngine:
    """
    Registry of named column filters.

    A filter is a pure function `(value, row, arg=None) -> value`: `row` is the
    raw source row, so a filter may read sibling columns, but it never keeps
    state between rows. Every built-in filter is idempotent.

    Declarations may carry one argument after a colon, e.g. 'concat_salt:Salt'.
    """

    def __init__(self):
        """Initialize the filter engine."""
        self._custom_filters: Dict[str, Filter] = {}
        self._builtin_filters = self._register_builtin_filters()

    def _register_builtin_filters(self) -> Dict[str, Filter]:
        """Register all built-in filters."""
        return {
            "html_decode": html_decode,
            "HTMLDecoder": html_decode,
            "bool": to_bool,
            "timestamp_to_date": timestamp_to_date,
            "force_date": force_date,
            "null_if_empty": null_if_empty,
            "concat_salt": concat_salt,
            "lowercase": lowercase,
            "strip_tags": strip_tags,
        }

    def register_filter(self, name: str, func: Filter) -> None:
        """Register a custom filter."""
        self._custom_filters[name] = func

    def resolve(self, declaration: Any) -> Filter:
        """
        Turn a filter declaration into a callable.

        Args:
            declaration: Filter name, 'name:arg', or a callable

        Returns:
            Callable taking (value, row)
        """
        if callable(declaration):
            return declaration

        name, _, arg = str(declaration).partition(":")
        func = self._custom_filters.get(name) or self._builtin_filters.get(name)
        if func is None:
            raise UnknownFilter(name)

        if arg:
            return partial(func, arg=arg)
        return func

    def list_filters(self):
        return sorted(set(self._builtin_filters) | set(self._custom_filters))


def apply_chain(chain, value: Any, row: Dict[str, Any]) -> Any:
    """Run a resolved filter chain over one value, in order."""
    for func in chain:
        value = func(value, row)
    return value


# Built-in filters

def html_decode(value: Any, row: Optional[Dict[str, Any]] = None, arg: Optional[str] = None) -> Any:
    """Decode HTML entities, including multiply-encoded ones."""
    if not isinstance(value, str):
        return value
    decoded = html.unescape(value)
    while decoded != value:
        value = decoded
        decoded = html.unescape(value)
    return decoded


def to_bool(value: Any, row: Optional[Dict[str, Any]] = None, arg: Optional[str] = None) -> Any:
    """Coerce vendor boolean encodings ('y', 'Yes', 'true', 1) to 0/1."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return 1 if value else 0
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    return 1 if str(value).strip().lower() in TRUE_VALUES else 0


def timestamp_to_date(value: Any, row: Optional[Dict[str, Any]] = None, arg: Optional[str] = None) -> Any:
    """Convert Unix seconds to a UTC datetime string; leaves other values alone."""
    if value is None or value == "":
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return value
    if seconds <= 0:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime(DATE_FORMAT)


def force_date(value: Any, row: Optional[Dict[str, Any]] = None, arg: Optional[str] = None) -> Any:
    """Normalize any parseable date to 'YYYY-MM-DD HH:MM:SS'; unparseable -> None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    text = str(value).strip()
    if not text or text.startswith("0000-00-00"):
        return None
    try:
        return date_parser.parse(text).strftime(DATE_FORMAT)
    except (ValueError, OverflowError):
        logger.debug(f"Unparseable date: {text}")
        return None


def null_if_empty(value: Any, row: Optional[Dict[str, Any]] = None, arg: Optional[str] = None) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def concat_salt(value: Any, row: Optional[Dict[str, Any]] = None, arg: Optional[str] = None) -> Any:
    """Prefix a password hash with its salt as '<salt>$<hash>'."""
    if value is None or not row or not arg:
        return value
    salt = row.get(arg)
    if not salt:
        return value
    prefix = f"{salt}$"
    if str(value).startswith(prefix):
        return value
    return f"{prefix}{value}"


def lowercase(value: Any, row: Optional[Dict[str, Any]] = None, arg: Optional[str] = None) -> Any:
    if value is None:
        return None
    return str(value).lower()


def strip_tags(value: Any, row: Optional[Dict[str, Any]] = None, arg: Optional[str] = None) -> Any:
    if not isinstance(value, str):
        return value
    return _TAG_RE.sub("", value)
