"""
Controller Base Class

Provides the base Controller class and RequestCtx abstraction.
"""

from typing import Any, Dict, Optional, TYPE_CHECKING
from dataclasses import dataclass, field

if TYPE_CHECKING:
    from heron.http import Request


@dataclass
class RequestCtx:
    """
    Request context provided to middleware steps and handlers.

    One context is created per dispatched request and never shared.

    Attributes:
        request: The transport-neutral request (raw query/body stay here)
        route_path: Normalized path of the matched route
        path_params: Values captured by ``:name`` placeholders
        query: Query mapping, replaced by the validated value when a query
               shape is declared
        body: Request body, replaced by the validated value when a body
              shape is declared
        state: Free-form per-request storage for middleware
        result: Handler return value once the handler has run
    """

    request: "Request"
    route_path: str = ""
    path_params: Dict[str, str] = field(default_factory=dict)
    query: Any = None
    body: Any = None
    state: Dict[str, Any] = field(default_factory=dict)
    result: Any = None

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def headers(self) -> Dict[str, str]:
        return self.request.headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.request.header(name, default)

    def param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a single path parameter."""
        return self.path_params.get(name, default)


class Controller:
    """
    Base Controller class.

    Controllers group related handlers under one base path. Subclassing is
    optional; any object can be registered as an owner. This class only
    supplies the conventional attributes.

    Class Attributes:
        prefix: Base path for all routes (e.g., "/users")
        name: Owner name used for tagging; defaults to the class name

    Example:
        class UsersController(Controller):
            prefix = "/users"

            @GET("/:id")
            async def get_user(self, ctx):
                return self.repo.get(ctx.param("id"))
    """

    prefix: Optional[str] = None
    name: Optional[str] = None
