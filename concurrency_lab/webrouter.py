"""Request routing with method prefixes, path wildcards and precedence, plus demo handlers."""

from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qs, quote, unquote, urlsplit

_TEXT_PLAIN = "text/plain; charset=utf-8"
_JSON = "application/json"
_METHOD_RE = re.compile(r"^[A-Z]+$")
_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_PATH_SAFE = "/:@!$&'()*+,;=-._~"


def _find_header(headers: Mapping[str, str], name: str) -> str:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return ""


def _encode_json(value: Any) -> bytes:
    return (json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False) + "\n").encode("utf-8")


@dataclass
class Request:
    """An incoming request; ``path_params`` is filled in by the router."""

    method: str = "GET"
    path: str = "/"
    query: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        method: str,
        target: str,
        body: Union[bytes, str] = b"",
        headers: Optional[Mapping[str, str]] = None,
    ) -> Request:
        """Build a request from a method and a target such as ``/greet?name=x``."""
        parts = urlsplit(target)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            method=method.upper(),
            path=parts.path or "/",
            query=parts.query,
            headers=dict(headers or {}),
            body=body,
        )

    def path_value(self, name: str) -> str:
        """Return the value captured by wildcard ``name``, or an empty string."""
        return self.path_params.get(name, "")

    def query_param(self, name: str) -> str:
        """Return the first value of query parameter ``name``, or an empty string."""
        values = parse_qs(self.query).get(name)
        return values[0] if values else ""

    def header(self, name: str) -> str:
        """Return a header value, looked up case-insensitively."""
        return _find_header(self.headers, name)


@dataclass
class Response:
    """An outgoing response."""

    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def error(cls, message: str, status: int) -> Response:
        """A plain-text error response whose body is ``message`` and a newline."""
        return cls(
            status=status,
            headers={"Content-Type": _TEXT_PLAIN, "X-Content-Type-Options": "nosniff"},
            body=(message + "\n").encode("utf-8"),
        )

    @classmethod
    def json_encoded(
        cls, value: Any, status: int = 200, content_type: Optional[str] = _JSON
    ) -> Response:
        """A response carrying ``value`` as compact JSON with sorted keys and a newline."""
        headers = {"Content-Type": content_type} if content_type else {}
        return cls(status=status, headers=headers, body=_encode_json(value))

    def write(self, data: Union[bytes, str]) -> None:
        """Append ``data`` to the body."""
        self.body += data.encode("utf-8") if isinstance(data, str) else bytes(data)

    def header(self, name: str) -> str:
        """Return a header value, looked up case-insensitively."""
        return _find_header(self.headers, name)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", "replace")

    def json(self) -> Any:
        """Parse the body as JSON."""
        return json.loads(self.body)

    @property
    def reason(self) -> str:
        try:
            return HTTPStatus(self.status).phrase
        except ValueError:
            return ""


Handler = Callable[[Request], Optional[Response]]

_LITERAL, _SINGLE, _MULTI = 3, 2, 1


@dataclass(frozen=True)
class _Segment:
    kind: int
    value: str


@dataclass(frozen=True)
class _Route:
    pattern: str
    method: Optional[str]
    segments: Tuple[_Segment, ...]
    subtree: bool
    handler: Handler

    @property
    def shape(self) -> tuple:
        return (
            self.method,
            tuple((s.kind, s.value if s.kind == _LITERAL else "") for s in self.segments),
            self.subtree,
        )

    @property
    def precedence(self) -> tuple:
        return (tuple(s.kind for s in self.segments), not self.subtree, self.method is not None)

    @property
    def methods(self) -> List[str]:
        if self.method == "GET":
            return ["GET", "HEAD"]
        return [self.method] if self.method else []

    def allows(self, method: str) -> bool:
        return self.method is None or method in self.methods

    def match(self, parts: List[str]) -> Optional[Dict[str, str]]:
        count = len(self.segments)
        if self.segments and self.segments[-1].kind == _MULTI:
            if len(parts) < count:
                return None
        elif self.subtree:
            if len(parts) <= count:
                return None
        elif len(parts) != count:
            return None

        params: Dict[str, str] = {}
        for index, segment in enumerate(self.segments):
            if segment.kind == _MULTI:
                params[segment.value] = "/".join(parts[index:])
                break
            part = parts[index]
            if segment.kind == _LITERAL:
                if part != segment.value:
                    return None
            elif not part:
                return None
            else:
                params[segment.value] = part
        return params


def _parse_pattern(pattern: str, handler: Handler) -> _Route:
    pieces = pattern.strip().split(None, 1)
    if not pieces:
        raise ValueError("empty pattern")
    method: Optional[str] = None
    if len(pieces) == 2:
        method, path = pieces[0], pieces[1].strip()
        if not _METHOD_RE.match(method):
            raise ValueError(f"invalid method {method!r} in pattern {pattern!r}")
    else:
        path = pieces[0]
    if not path.startswith("/"):
        raise ValueError(f"pattern {pattern!r} must have a path starting with '/'")

    raw = path[1:].split("/")
    subtree = raw[-1] == ""
    if subtree:
        raw = raw[:-1]

    segments: List[_Segment] = []
    names = set()
    for index, item in enumerate(raw):
        last = index == len(raw) - 1
        if item.startswith("{") and item.endswith("}"):
            name = item[1:-1]
            if name == "$":
                if not last:
                    raise ValueError(f"{{$}} must be the final segment in {pattern!r}")
                segments.append(_Segment(_LITERAL, ""))
                continue
            multi = name.endswith("...")
            if multi:
                name = name[:-3]
                if not last or subtree:
                    raise ValueError(f"{{{name}...}} must be the final segment in {pattern!r}")
            if not _NAME_RE.match(name):
                raise ValueError(f"invalid wildcard name {name!r} in {pattern!r}")
            if name in names:
                raise ValueError(f"duplicate wildcard name {name!r} in {pattern!r}")
            names.add(name)
            segments.append(_Segment(_MULTI if multi else _SINGLE, name))
        elif "{" in item or "}" in item:
            raise ValueError(f"bad wildcard segment {item!r} in {pattern!r}")
        elif item == "":
            raise ValueError(f"empty segment in {pattern!r}")
        else:
            segments.append(_Segment(_LITERAL, unquote(item)))
    return _Route(pattern, method, tuple(segments), subtree, handler)


def _request_from_environ(environ: Mapping[str, Any]) -> Request:
    path = environ.get("PATH_INFO", "") or "/"
    try:
        path = path.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        pass
    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    body = environ["wsgi.input"].read(length) if length > 0 else b""
    headers: Dict[str, str] = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers[key[5:].replace("_", "-").title()] = value
    if environ.get("CONTENT_TYPE"):
        headers["Content-Type"] = environ["CONTENT_TYPE"]
    return Request(
        method=environ.get("REQUEST_METHOD", "GET").upper(),
        path=quote(path, safe=_PATH_SAFE),
        query=environ.get("QUERY_STRING", ""),
        headers=headers,
        body=body,
    )


class Router:
    """Routes requests by optional method and path pattern; the most specific pattern wins.

    Patterns look like ``"GET /users/{id}"``, ``"/files/{path...}"``, ``"/static/"``
    (a whole subtree) or ``"/{$}"`` (the root only). A literal segment beats a
    wildcard, and a pattern with a method beats one without.
    """

    def __init__(self) -> None:
        self._routes: List[_Route] = []

    def handle(self, pattern: str, handler: Handler) -> None:
        """Register ``handler`` for ``pattern``; raise :class:`ValueError` if invalid or taken."""
        route = _parse_pattern(pattern, handler)
        for existing in self._routes:
            if existing.shape == route.shape:
                raise ValueError(f"pattern {pattern!r} conflicts with {existing.pattern!r}")
        self._routes.append(route)

    def serve(self, request: Request) -> Response:
        """Dispatch ``request`` and return the response, with 404 and 405 handled here."""
        path = request.path if request.path.startswith("/") else "/" + request.path
        parts = [unquote(part) for part in path[1:].split("/")]
        matched = [
            (route, params)
            for route in self._routes
            if (params := route.match(parts)) is not None
        ]
        if not matched:
            response = Response.error("404 page not found", 404)
        else:
            allowed = [(route, params) for route, params in matched if route.allows(request.method)]
            if not allowed:
                methods = sorted({m for route, _ in matched for m in route.methods})
                response = Response.error("Method Not Allowed", 405)
                response.headers["Allow"] = ", ".join(methods)
            else:
                route, params = max(allowed, key=lambda pair: pair[0].precedence)
                response = route.handler(dataclasses.replace(request, path_params=params)) or Response()

        if response.body and not response.header("Content-Type"):
            response.headers["Content-Type"] = _TEXT_PLAIN
        if request.method == "HEAD":
            response.body = b""
        return response

    def __call__(self, environ: Mapping[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        response = self.serve(_request_from_environ(environ))
        headers = [(k, v) for k, v in response.headers.items() if k.lower() != "content-length"]
        headers.append(("Content-Length", str(len(response.body))))
        start_response(f"{response.status} {response.reason}".rstrip(), headers)
        return [response.body]


def _decode_object(body: bytes) -> Any:
    """Decode the first JSON value of ``body``; it must be an object or null."""
    text = body.decode("utf-8").lstrip()
    value, _ = json.JSONDecoder().raw_decode(text)
    if value is not None and not isinstance(value, dict):
        raise ValueError("JSON value is not an object")
    return value


def greet_handler(greeting: str) -> Handler:
    """A handler that greets the ``name`` query parameter, or the world."""

    def handler(request: Request) -> Response:
        name = request.query_param("name") or "world"
        return Response(body=f"{greeting}, {name}!\n".encode("utf-8"))

    return handler


def user_handler(request: Request) -> Response:
    """GET returns the user named by ``{id}``; POST echoes a JSON object with 201."""
    if request.method == "GET":
        user_id = request.path_value("id")
        if not user_id:
            return Response.error("missing id", 400)
        return Response.json_encoded({"id": user_id, "name": "Alice"})
    if request.method == "POST":
        try:
            body = _decode_object(request.body)
        except ValueError:
            return Response.error("invalid JSON", 400)
        return Response.json_encoded(body, 201, content_type=None)
    return Response.error("method not allowed", 405)


def _get_user(request: Request) -> Response:
    return Response.json_encoded({"id": request.path_value("id"), "name": "Alice"})


def _create_user(request: Request) -> Response:
    try:
        body = _decode_object(request.body)
    except ValueError:
        return Response.error("invalid JSON", 400)
    return Response.json_encoded(body, 201)


def _echo(request: Request) -> Response:
    return Response(body=request.body)


def _delete_user(request: Request) -> Response:
    return Response(status=204)


def _serve_file(request: Request) -> Response:
    return Response(body=f"serving file: {request.path_value('path')}\n".encode("utf-8"))


def new_router() -> Router:
    """The demo API: greeting, user lookup/create/delete, echo and file paths."""
    router = Router()
    router.handle("GET /greet", greet_handler("Hello"))
    router.handle("GET /users/{id}", _get_user)
    router.handle("POST /users", _create_user)
    router.handle("POST /echo", _echo)
    router.handle("DELETE /users/{id}", _delete_user)
    router.handle("/files/{path...}", _serve_file)
    return router


def new_user_router() -> Router:
    """A router sending ``GET /users/{id}`` and ``POST /users`` to :func:`user_handler`."""
    router = Router()
    router.handle("GET /users/{id}", user_handler)
    router.handle("POST /users", user_handler)
    return router