"""Runtime support imported by generated packages.

Generated bindings are thin: they validate closed-set values with
:func:`ensure_choice` / :func:`ensure_choices` and hand everything else to
:func:`build_request`, which selects the route and method, substitutes the
path, encodes the query string and serialises the body into a
:class:`~escligen.models.RequestDescriptor`. Nothing here performs I/O
except :func:`read_payload` and the default dispatcher.

Generated commands pass each descriptor to :func:`dispatch`. Install a
transport with :func:`set_dispatcher`; without one, the descriptor is
printed as JSON on stdout (a dry run).
"""

from __future__ import annotations

import contextlib
import enum
import json
import re
import sys
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Sequence
from urllib.parse import quote

import click
import httpx

from escligen.exceptions import GeneratorError, InvalidUsageError
from escligen.models import RequestDescriptor, Route
from escligen.output import print_json

JSON_MEDIA_TYPE = "application/json"
NDJSON_MEDIA_TYPE = "application/x-ndjson"

PATH_SAFE = ",*"
"""Characters left unescaped in path values (multi-target expressions)."""

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")

Dispatcher = Callable[[RequestDescriptor], Any]

_dispatcher: Optional[Dispatcher] = None


# ---------------------------------------------------------------------------
# Value handling
# ---------------------------------------------------------------------------


def scalar(value: Any) -> Any:
    """Unwrap enum members to their values."""
    if isinstance(value, enum.Enum):
        return value.value
    return value


def encode_value(value: Any) -> str:
    """Wire spelling of a parameter value.

    Booleans are ``true``/``false``; lists and tuples are comma joined.

    Example::

        >>> encode_value(["a", "b"])
        'a,b'
        >>> encode_value(False)
        'false'
    """
    value = scalar(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(encode_value(v) for v in value)
    return str(value)


def split_list(value: Any) -> list[str]:
    """Items of a list parameter given as a list or a comma-separated string."""
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return [item.strip() for item in encode_value(value).split(",") if item.strip()]


def ensure_choice(name: str, value: Any, choices: Sequence[str]) -> None:
    """Reject a value outside a closed set.

    Raises:
        InvalidUsageError: Naming the parameter and the allowed values.
    """
    if value is None:
        return
    text = encode_value(value)
    if text not in choices:
        raise InvalidUsageError(
            f"Invalid value for '{name}': {text!r} (choose from {', '.join(choices)})"
        )


def ensure_choices(name: str, value: Any, choices: Sequence[str]) -> None:
    """:func:`ensure_choice` for every item of a list parameter."""
    if value is None:
        return
    for item in split_list(value):
        ensure_choice(name, item, choices)


# ---------------------------------------------------------------------------
# Route and method selection
# ---------------------------------------------------------------------------


def select_route(endpoint: str, routes: Sequence[Route], supplied: Iterable[str]) -> Route:
    """Return the route whose parameter set equals *supplied*.

    *routes* are ordered most specific first, and no two share a parameter
    set, so at most one matches.

    Raises:
        InvalidUsageError: If no route accepts exactly these parameters.
    """
    wanted = set(supplied)
    for route in routes:
        if set(route.parameters) == wanted:
            return route
    accepted = "; ".join(
        ", ".join(r.parameters) if r.parameters else "(none)" for r in routes
    )
    given = ", ".join(sorted(wanted)) or "(none)"
    raise InvalidUsageError(
        f"No URL of '{endpoint}' accepts path parameters {given}; accepted sets: {accepted}"
    )


def select_method(route: Route, has_body: bool) -> str:
    """Pick the HTTP method of a request on *route*.

    A single declared method is used as is. Otherwise ``POST`` (then
    ``PUT``) when a body is supplied, else ``GET``, else the first declared.
    """
    methods = route.methods
    if len(methods) == 1:
        return methods[0]
    if has_body:
        for method in ("POST", "PUT"):
            if method in methods:
                return method
    if "GET" in methods:
        return "GET"
    return methods[0]


def substitute_path(template: str, values: Mapping[str, Any]) -> str:
    """Fill the placeholders of *template* with percent-encoded *values*.

    Example::

        >>> substitute_path("/{index}/_doc/{id}", {"index": "orders", "id": 42})
        '/orders/_doc/42'
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values:
            raise InvalidUsageError(f"Missing value for path parameter '{name}'")
        return quote(encode_value(values[name]), safe=PATH_SAFE)

    return _PLACEHOLDER_RE.sub(_replace, template)


def encode_query(params: Mapping[str, Any]) -> str:
    """Form-encode the set values of *params*, in the given order."""
    items = [(name, encode_value(value)) for name, value in params.items() if value is not None]
    return str(httpx.QueryParams(items))


# ---------------------------------------------------------------------------
# Body serialisation
# ---------------------------------------------------------------------------


def serialize_body(payload: Any, media_types: Sequence[str]) -> tuple[str, str]:
    """Serialise *payload* in the first declared media type.

    Returns:
        ``(body, content_type)``.

    Raises:
        InvalidUsageError: If a JSON body is given as text that is not JSON.
    """
    media_type = media_types[0] if media_types else JSON_MEDIA_TYPE

    if media_type == NDJSON_MEDIA_TYPE:
        if isinstance(payload, (list, tuple)):
            lines = [json.dumps(item, ensure_ascii=False) for item in payload]
            return "".join(f"{line}\n" for line in lines), media_type
        text = _text(payload)
        return (text if text.endswith("\n") else f"{text}\n"), media_type

    if media_type == JSON_MEDIA_TYPE or media_type.endswith("+json"):
        if isinstance(payload, (str, bytes)):
            text = _text(payload)
            try:
                json.loads(text)
            except json.JSONDecodeError as exc:
                raise InvalidUsageError(f"Request body is not valid JSON: {exc}") from exc
            return text, media_type
        return json.dumps(payload, ensure_ascii=False), media_type

    return _text(payload), media_type


def _text(payload: Any) -> str:
    if isinstance(payload, bytes):
        return payload.decode("utf-8")
    return str(payload)


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------


def build_request(
    endpoint: str,
    routes: Sequence[Route],
    path: Mapping[str, Any],
    query: Mapping[str, Any],
    payload: Any = None,
    media_types: Sequence[str] = (),
    body_required: bool = False,
    headers: Optional[Mapping[str, str]] = None,
) -> RequestDescriptor:
    """Assemble the :class:`~escligen.models.RequestDescriptor` of one call.

    Args:
        endpoint: Endpoint name, used in error messages.
        routes: The endpoint's routes, most specific first.
        path: Path parameter values by wire name; ``None`` means unset.
        query: Query parameter values by wire name; ``None`` means unset.
        payload: Request body, or ``None``.
        media_types: Declared request media types.
        body_required: Whether the endpoint requires a body.
        headers: Extra request headers.

    Raises:
        InvalidUsageError: For a missing required body or when no route
            accepts the supplied path parameters.
    """
    if payload is None and body_required:
        raise InvalidUsageError(f"'{endpoint}' requires a request body")

    supplied = {name: value for name, value in path.items() if value is not None}
    route = select_route(endpoint, routes, supplied)

    request_headers: dict[str, str] = {}
    body: Optional[str] = None
    if payload is not None:
        body, content_type = serialize_body(payload, media_types)
        request_headers["Content-Type"] = content_type
    request_headers.update(headers or {})

    return RequestDescriptor(
        method=select_method(route, payload is not None),
        path=substitute_path(route.template, supplied),
        query_string=encode_query(query),
        headers=request_headers,
        body=body,
    )


# ---------------------------------------------------------------------------
# Command-line helpers
# ---------------------------------------------------------------------------


def read_payload(source: Optional[str], required: bool = False) -> Optional[str]:
    """Read the request body for a command.

    Stdin is read for ``-``. Without *source*, piped stdin is read only when
    the body is *required*; an optional body comes from stdin only with ``-``.

    Args:
        source: A file path, ``-`` for stdin, or ``None``.
        required: The endpoint cannot be called without a body.

    Raises:
        InvalidUsageError: If the file cannot be read.
    """
    if source == "-" or (source is None and required and not sys.stdin.isatty()):
        content = sys.stdin.read()
        return content if content.strip() else None
    if source is None:
        return None

    file_path = Path(source)
    if not file_path.is_file():
        raise InvalidUsageError(f"Input file not found: {source}")
    try:
        return file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidUsageError(f"Failed to read input file {source}: {exc}") from exc


def parse_headers(values: Optional[Sequence[str]]) -> dict[str, str]:
    """Parse repeated ``Name: value`` header options.

    Raises:
        InvalidUsageError: For an entry without a colon or name.
    """
    headers: dict[str, str] = {}
    for raw in values or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Invalid header {raw!r} (expected 'Name: value')")
        headers[name.strip()] = value.strip()
    return headers


@contextlib.contextmanager
def cli_errors() -> Iterator[None]:
    """Turn generator errors raised inside a command into Click errors.

    :class:`~escligen.exceptions.InvalidUsageError` becomes a usage error
    (exit 2); any other :class:`~escligen.exceptions.GeneratorError` exits
    with its own code.
    """
    try:
        yield
    except InvalidUsageError as exc:
        raise click.UsageError(str(exc)) from exc
    except GeneratorError as exc:
        error = click.ClickException(str(exc))
        error.exit_code = exc.exit_code
        raise error from exc


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def set_dispatcher(dispatcher: Optional[Dispatcher]) -> None:
    """Install the callable that receives request descriptors (``None`` resets)."""
    global _dispatcher
    _dispatcher = dispatcher


def get_dispatcher() -> Optional[Dispatcher]:
    return _dispatcher


def dispatch(descriptor: RequestDescriptor) -> Any:
    """Send *descriptor* to the installed dispatcher, or print it as JSON."""
    if _dispatcher is not None:
        return _dispatcher(descriptor)
    print_json(descriptor.model_dump())
    return None
