"""
Route table and dispatcher

Routes are registered once at startup and the table is frozen before the
first request. Matching is a pure function of the table and the
(method, path) pair:

    table = RouteTable()
    with table.group('/api/v1'):
        table.register('GET', '/users/{id:int}', HandlerId('users', 'get'))
    table.freeze()

    table.match('GET', '/api/v1/users/42')
    # Matched(handler=HandlerId('users', 'get'), params={'id': '42'}, ...)

Placeholders are `{name:int}` (ASCII digits) or `{name}` / `{name:str}`
(any non-empty segment). At every position a static segment beats an `int`
placeholder which beats a `str` placeholder.
"""

import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import unquote

HTTP_METHODS = ('GET', 'POST', 'PUT', 'DELETE')

_PLACEHOLDER = re.compile(r'^\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<kind>[a-z]+))?\}$')
_DIGITS = re.compile(r'^[0-9]+$')

# Largest id a BIGINT column can hold
MAX_ID = 2 ** 63 - 1

# Specificity rank of a segment kind, higher wins
_RANK = {'static': 2, 'int': 1, 'str': 0}
_CONVERTERS = {'int': int, 'str': str}


@dataclass(frozen=True)
class HandlerId:
    """(controller name, action name) pair a route resolves to"""

    controller: str
    action: str

    def __str__(self):
        return f"{self.controller}.{self.action}"


@dataclass(frozen=True)
class Segment:
    kind: str
    value: str

    def accepts(self, part: str) -> bool:
        if self.kind == 'static':
            return part == self.value
        if self.kind == 'int':
            # Ids outside the BIGINT range never match
            return bool(_DIGITS.match(part)) and len(part) <= 19 and int(part) <= MAX_ID
        return part != ''


def parse_pattern(pattern: str) -> Tuple[Segment, ...]:
    """Compile '/users/{id:int}' into its segments"""
    if not pattern.startswith('/'):
        raise ValueError(f"Route pattern must start with '/': {pattern!r}")

    segments = []
    names = set()
    for part in _split(pattern):
        placeholder = _PLACEHOLDER.match(part)
        if placeholder:
            kind = placeholder.group('kind') or 'str'
            name = placeholder.group('name')
            if kind not in _CONVERTERS:
                raise ValueError(f"Unknown placeholder type '{kind}' in {pattern!r}")
            if name in names:
                raise ValueError(f"Duplicate placeholder '{name}' in {pattern!r}")
            names.add(name)
            segments.append(Segment(kind, name))
        elif '{' in part or '}' in part:
            raise ValueError(f"Malformed placeholder '{part}' in {pattern!r}")
        elif part == '':
            raise ValueError(f"Empty segment in {pattern!r}")
        else:
            segments.append(Segment('static', part))
    return tuple(segments)


def _split(path: str) -> List[str]:
    parts = path[1:].split('/') if path.startswith('/') else path.split('/')
    # '/users/' is the same path as '/users'; '/' has no segment at all
    if parts and parts[-1] == '':
        parts.pop()
    return parts


def split_request_path(uri: str) -> Tuple[str, ...]:
    """
    Strip the query string from a raw request URI and percent-decode it

    Decoding happens per segment so that an encoded '/' stays inside its
    segment.
    """
    path = uri.split('?', 1)[0].split('#', 1)[0]
    if not path.startswith('/'):
        path = '/' + path
    return tuple(unquote(part) for part in _split(path))


@dataclass(frozen=True)
class Route:
    method: str
    pattern: str
    handler: HandlerId
    segments: Tuple[Segment, ...] = field(default=(), compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, 'method', self.method.upper())
        object.__setattr__(self, 'segments', parse_pattern(self.pattern))

    @property
    def param_names(self) -> List[str]:
        return [s.value for s in self.segments if s.kind != 'static']

    @property
    def shape(self) -> tuple:
        """Segments with placeholder names erased: '/a/{x:int}' == '/a/{y:int}'"""
        return tuple((s.kind, s.value if s.kind == 'static' else None) for s in self.segments)

    @property
    def specificity(self) -> Tuple[int, ...]:
        return tuple(_RANK[s.kind] for s in self.segments)

    def match_segments(self, parts: Tuple[str, ...]) -> Optional[Dict[str, str]]:
        if len(parts) != len(self.segments):
            return None
        params = {}
        for segment, part in zip(self.segments, parts):
            if not segment.accepts(part):
                return None
            if segment.kind != 'static':
                params[segment.value] = part
        return params

    def convert(self, params: Dict[str, str]) -> list:
        """Path parameters as positional arguments, typed, in declared order"""
        return [
            _CONVERTERS[s.kind](params[s.value])
            for s in self.segments if s.kind != 'static'
        ]


@dataclass(frozen=True)
class Matched:
    handler: HandlerId
    params: Dict[str, str]
    route: Route


@dataclass(frozen=True)
class MethodNotAllowed:
    allowed_methods: Tuple[str, ...]


@dataclass(frozen=True)
class NotFound:
    pass


MatchResult = Union[Matched, MethodNotAllowed, NotFound]


class RouteTable:
    """
    Process-wide table of routes

    Built once at startup, then frozen; after that it is only read, so it is
    safe to share between concurrent requests.
    """

    def __init__(self):
        self._routes: List[Route] = []
        self._by_length: Dict[int, List[Route]] = {}
        self._keys = set()
        self._prefixes: List[str] = []
        self._frozen = False

    @contextmanager
    def group(self, prefix: str):
        """
        Register every route of the block under a common prefix

        Usage:
            with table.group('/api/v1'):
                table.register('GET', '/users', HandlerId('users', 'list'))
        """
        self._prefixes.append(prefix.rstrip('/'))
        try:
            yield self
        finally:
            self._prefixes.pop()

    def register(self, method: str, pattern: str, handler: HandlerId) -> Route:
        if self._frozen:
            raise RuntimeError('Route table is frozen, routes must be registered at startup')

        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        full_pattern = ''.join(self._prefixes) + pattern
        if full_pattern != '/' and full_pattern.endswith('/'):
            full_pattern = full_pattern.rstrip('/')

        route = Route(method, full_pattern or '/', handler)
        key = (route.method, route.shape)
        if key in self._keys:
            raise ValueError(f"Route already registered: {method} {full_pattern}")

        self._keys.add(key)
        self._routes.append(route)
        self._by_length.setdefault(len(route.segments), []).append(route)
        return route

    def freeze(self) -> 'RouteTable':
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def routes(self) -> Tuple[Route, ...]:
        return tuple(self._routes)

    def __iter__(self):
        return iter(self._routes)

    def __len__(self):
        return len(self._routes)

    def match(self, method: str, uri: str) -> MatchResult:
        """
        Resolve a request to a handler

        Returns:
            Matched, MethodNotAllowed (with every method registered for a
            pattern matching the path) or NotFound
        """
        method = method.upper()
        parts = split_request_path(uri)

        best = None
        allowed = set()
        for route in self._by_length.get(len(parts), ()):
            params = route.match_segments(parts)
            if params is None:
                continue
            allowed.add(route.method)
            if route.method != method:
                continue
            if best is None or route.specificity > best[0].specificity:
                best = (route, params)

        if best is not None:
            route, params = best
            return Matched(route.handler, params, route)
        if allowed:
            return MethodNotAllowed(tuple(sorted(allowed)))
        return NotFound()


__all__ = [
    'HandlerId',
    'Route',
    'RouteTable',
    'Matched',
    'MethodNotAllowed',
    'NotFound',
    'MatchResult',
    'parse_pattern',
    'split_request_path',
]
