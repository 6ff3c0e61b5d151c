"""
Router - maps (verb, path) to compiled route endpoints.

This is the external router primitive compiled routes are bound to. It
knows nothing about contracts; it only matches paths and hands the request
to the endpoint.

Performance:
- Static routes use O(1) dict lookup per method.
- Parameterized routes use a segment trie, O(k) where k = segments.
  Static children are preferred over placeholders.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from ..contract import error_envelope
from ..faults import MethodNotAllowedError, NotFoundError
from ..http import Request, Response
from .metadata import placeholder_names


logger = logging.getLogger("heron.router")

Endpoint = Callable[[Request], Awaitable[Response]]


@dataclass
class RouteMatch:
    """Result of a successful match."""
    endpoint: Endpoint
    params: Dict[str, str]
    route_path: str


_EMPTY_PARAMS: Dict[str, str] = {}


class _TrieNode:
    """Segment trie node for parameterized route matching."""
    __slots__ = ('children', 'param_child', 'param_name', 'endpoint', 'route_path')

    def __init__(self):
        self.children: Dict[str, '_TrieNode'] = {}
        self.param_child: Optional['_TrieNode'] = None
        self.param_name: Optional[str] = None
        self.endpoint: Optional[Endpoint] = None
        self.route_path: Optional[str] = None


def _segments(path: str) -> List[str]:
    return [s for s in path.split("/") if s]


def _normalize(path: str) -> str:
    return "/" + "/".join(_segments(path))


class Router:
    """
    Two-tier router.

    1. Static route hash map: O(1) lookup for routes with no placeholders
    2. Trie for ``:name`` routes
    """

    def __init__(self):
        self._static_routes: Dict[str, Dict[str, Endpoint]] = {}
        self._tries: Dict[str, _TrieNode] = {}
        self._registered: List[Tuple[str, str]] = []

    def add_route(self, method: str, path: str, endpoint: Endpoint) -> bool:
        """
        Register an endpoint.

        Returns:
            False if (method, path) was already taken; the first one is kept
        """
        method = method.upper()
        path = _normalize(path)

        if (method, path) in self._registered:
            logger.warning(f"Route {method} {path} is already bound; keeping the first")
            return False

        if not placeholder_names(path):
            self._static_routes.setdefault(method, {})[path] = endpoint
        else:
            node = self._tries.setdefault(method, _TrieNode())
            for segment in _segments(path):
                if segment.startswith(":"):
                    if node.param_child is None:
                        node.param_child = _TrieNode()
                        node.param_child.param_name = segment[1:]
                    elif node.param_child.param_name != segment[1:]:
                        logger.warning(
                            f"Route {method} {path}: placeholder '{segment[1:]}' shadows "
                            f"'{node.param_child.param_name}' at the same position"
                        )
                    node = node.param_child
                else:
                    node = node.children.setdefault(segment, _TrieNode())
            node.endpoint = endpoint
            node.route_path = path

        self._registered.append((method, path))
        return True

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        method = method.upper()
        norm_path = _normalize(path)

        static_map = self._static_routes.get(method)
        if static_map:
            endpoint = static_map.get(norm_path)
            if endpoint is not None:
                return RouteMatch(endpoint, _EMPTY_PARAMS, norm_path)

        root = self._tries.get(method)
        if root is None:
            return None
        return self._walk(root, _segments(path), 0, {})

    def _walk(
        self,
        node: _TrieNode,
        segments: List[str],
        index: int,
        params: Dict[str, str],
    ) -> Optional[RouteMatch]:
        if index == len(segments):
            if node.endpoint is None:
                return None
            return RouteMatch(node.endpoint, dict(params), node.route_path)

        segment = segments[index]
        child = node.children.get(segment)
        if child is not None:
            found = self._walk(child, segments, index + 1, params)
            if found is not None:
                return found

        if node.param_child is not None:
            params[node.param_child.param_name] = segment
            found = self._walk(node.param_child, segments, index + 1, params)
            if found is not None:
                return found
            del params[node.param_child.param_name]

        return None

    def allowed_methods(self, path: str) -> List[str]:
        methods = {m for m in self._static_routes} | {m for m in self._tries}
        return sorted(m for m in methods if self.match(m, path) is not None)

    async def dispatch(self, request: Request) -> Response:
        """
        Route a request to its endpoint.

        Unknown paths answer 404, known paths with the wrong verb 405, both
        as error envelopes.
        """
        matched = self.match(request.method, request.path)
        if matched is None:
            allowed = self.allowed_methods(request.path)
            fault = MethodNotAllowedError() if allowed else NotFoundError()
            headers = {"allow": ", ".join(allowed)} if allowed else None
            return Response.json(
                error_envelope(fault.message), fault.status_code, headers=headers,
            )

        request.path_params = matched.params
        return await matched.endpoint(request)

    def routes(self) -> List[Tuple[str, str]]:
        """Bound (method, path) pairs in registration order."""
        return list(self._registered)

    def __len__(self) -> int:
        return len(self._registered)


def bind(routes: Iterable[Any], router: Optional[Router] = None) -> Router:
    """Register each compiled route's (verb, path, endpoint) triple."""
    router = router if router is not None else Router()
    for route in routes:
        router.add_route(route.method, route.full_path, route)
    return router


__all__ = [
    "Router",
    "RouteMatch",
    "bind",
]
