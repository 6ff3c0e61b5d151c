"""
Controller Method Decorators

HTTP method and contract decorators for controller methods.
They attach plain metadata to the function and do nothing else; nothing is
registered until ``Registry.include(controller)`` lowers the metadata into
explicit registry calls.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar, Union
import inspect

from .metadata import HTTPVerb, MiddlewareDescriptor


F = TypeVar('F', bound=Callable[..., Any])

ROUTE_ATTR = "__route_metadata__"
HANDLER_ATTR = "__handler_metadata__"


class RouteDecorator:
    """
    Base route decorator.

    Attaches a ``{"http_method", "path", "func_name"}`` record to the
    decorated method. Stacking several route decorators on one method
    declares several routes bound to the same handler.
    """

    method: Optional[HTTPVerb] = None

    def __init__(self, path: str = "/"):
        """
        Args:
            path: Sub-path relative to the controller prefix,
                  with ``:name`` placeholders (e.g. "/", "/:id")
        """
        self.path = path

    def __call__(self, func: F) -> F:
        if not hasattr(func, ROUTE_ATTR):
            func.__route_metadata__ = []

        func.__route_metadata__.append({
            'http_method': self.method,
            'path': self.path,
            'func_name': func.__name__,
        })
        return func


class GET(RouteDecorator):
    """GET request decorator."""
    method = HTTPVerb.GET


class POST(RouteDecorator):
    """POST request decorator."""
    method = HTTPVerb.POST


class PUT(RouteDecorator):
    """PUT request decorator."""
    method = HTTPVerb.PUT


class PATCH(RouteDecorator):
    """PATCH request decorator."""
    method = HTTPVerb.PATCH


class DELETE(RouteDecorator):
    """DELETE request decorator."""
    method = HTTPVerb.DELETE


_DECORATORS = {
    HTTPVerb.GET: GET,
    HTTPVerb.POST: POST,
    HTTPVerb.PUT: PUT,
    HTTPVerb.PATCH: PATCH,
    HTTPVerb.DELETE: DELETE,
}


def route(
    method: Union[str, List[str]],
    path: str = "/",
) -> Callable[[F], F]:
    """
    Generic route decorator.

    Example:
        @route(["GET", "POST"], "/items")
        async def handle_items(self, ctx):
            ...

    Raises:
        ValueError: On an unsupported verb
    """
    methods = [method] if isinstance(method, str) else method

    def decorator(func: F) -> F:
        for http_method in methods:
            func = _DECORATORS[HTTPVerb.parse(http_method)](path)(func)
        return func

    return decorator


# ─── Contract decorators ──────────────────────────────────────────────────────

def _handler_metadata(func: Callable[..., Any]) -> Dict[str, Any]:
    if not hasattr(func, HANDLER_ATTR):
        func.__handler_metadata__ = {'middleware': []}
    return func.__handler_metadata__


def body(shape: Any) -> Callable[[F], F]:
    """Declare the request body shape (validated strictly)."""
    def decorator(func: F) -> F:
        _handler_metadata(func)['body'] = shape
        return func
    return decorator


def query(shape: Any) -> Callable[[F], F]:
    """Declare the query-string shape (validated strictly)."""
    def decorator(func: F) -> F:
        _handler_metadata(func)['query'] = shape
        return func
    return decorator


def response(shape: Any) -> Callable[[F], F]:
    """Declare the response shape the handler promises to return."""
    def decorator(func: F) -> F:
        _handler_metadata(func)['response'] = shape
        return func
    return decorator


def middleware(
    step: Union[Callable[..., Any], MiddlewareDescriptor],
    *,
    header_key: Optional[str] = None,
    description: Optional[str] = None,
) -> Callable[[F], F]:
    """
    Attach a middleware step to a handler.

    ``step`` may be a callable, a ``MiddlewareDescriptor``, or an object
    exposing ``handler`` plus optional ``header_key``/``description``
    attributes (a class is instantiated first).

    Steps run in the order they are listed top to bottom.
    """
    descriptor = as_descriptor(step, header_key=header_key, description=description)

    def decorator(func: F) -> F:
        # Decorators apply bottom-up; insert at the front to keep source order.
        _handler_metadata(func)['middleware'].insert(0, descriptor)
        return func
    return decorator


def as_descriptor(
    step: Any,
    *,
    header_key: Optional[str] = None,
    description: Optional[str] = None,
) -> MiddlewareDescriptor:
    """Normalize the accepted middleware spellings into a descriptor."""
    if isinstance(step, MiddlewareDescriptor):
        return step
    if inspect.isclass(step):
        step = step()
    if hasattr(step, "handler") and callable(step.handler):
        return MiddlewareDescriptor(
            step=step.handler,
            header_key=header_key or getattr(step, "header_key", None),
            description=description or getattr(step, "description", None),
            name=type(step).__name__,
        )
    return MiddlewareDescriptor(step=step, header_key=header_key, description=description)


# ─── Extraction ───────────────────────────────────────────────────────────────

def collect_declarations(
    owner: Any,
) -> Tuple[List[Dict[str, Any]], Dict[str, Dict[str, Any]]]:
    """
    Read decorator metadata back from an owner.

    Routes come out in definition order of the methods (base classes
    first), then decorator order. The handler id is the attribute name.

    Returns:
        (route records, handler metadata keyed by handler id)
    """
    routes: List[Dict[str, Any]] = []
    contracts: Dict[str, Dict[str, Any]] = {}

    for name, func in _iter_decorated(owner):
        for record in getattr(func, ROUTE_ATTR, ()):
            routes.append({**record, 'handler_id': name})
        meta = getattr(func, HANDLER_ATTR, None)
        if meta:
            contracts[name] = meta

    return routes, contracts


def _iter_decorated(owner: Any) -> Iterator[Tuple[str, Callable[..., Any]]]:
    cls = owner if inspect.isclass(owner) else type(owner)
    order: List[str] = []
    for klass in reversed(cls.__mro__):
        for name in vars(klass):
            if name not in order:
                order.append(name)

    for name in order:
        func = inspect.getattr_static(cls, name)
        if isinstance(func, (staticmethod, classmethod)):
            func = func.__func__
        if hasattr(func, ROUTE_ATTR) or hasattr(func, HANDLER_ATTR):
            yield name, func
