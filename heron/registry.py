"""
Metadata Registry - the single source of truth for declared routes.

Owners (controllers), their route declarations and per-handler contracts are
written here during bootstrap through an explicit API:

    registry = Registry()
    users = registry.register_owner(UsersController(), base_path="/users")
    registry.declare_route(users, "GET", "/:id", "get_user")
    registry.attach_metadata(users, "get_user", response=User)
    registry.freeze()

The route compiler and the documentation generator each fold the registry
into their own output. Neither writes back.

Lifecycle is build-then-freeze: mutation after ``freeze()`` raises
``RegistryFrozenError``. ``reset()`` exists for test isolation only.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .controller.decorators import as_descriptor, collect_declarations
from .controller.metadata import (
    HandlerMetadata,
    HandlerOwner,
    HTTPVerb,
    MiddlewareDescriptor,
    RouteDeclaration,
    check_path,
    join_path,
)
from .faults import (
    DuplicateRegistrationError,
    InvalidRouteError,
    InvalidRoutePathError,
    RegistrationError,
    RegistryFrozenError,
    UnknownOwnerError,
)


logger = logging.getLogger("heron.registry")

OwnerRef = Union[HandlerOwner, Any]


class Registry:
    """
    Insertion-ordered store of handler owners and their declarations.

    Owner identity is the object passed to ``register_owner`` (a class or an
    instance). Declarations may reference an owner by that object, by the
    instance the registry holds, or by the returned ``HandlerOwner``.
    """

    def __init__(self):
        self._owners: List[HandlerOwner] = []
        self._index: Dict[int, HandlerOwner] = {}
        self._frozen = False

    # ── Writes ──────────────────────────────────────────────────────────

    def register_owner(
        self,
        owner: Any,
        *,
        base_path: Optional[str] = None,
        name: Optional[str] = None,
    ) -> HandlerOwner:
        """
        Append an owner to the registry.

        Args:
            owner: Controller instance, or a class instantiated once with no
                   arguments
            base_path: Base path; defaults to ``owner.prefix``
            name: Documentation tag; defaults to ``owner.name`` or the class name

        Raises:
            DuplicateRegistrationError: If the same owner is already registered
            InvalidRoutePathError: If the base path is malformed
        """
        self._check_mutable("register_owner")

        if isinstance(owner, HandlerOwner):
            owner = owner.target

        owner_name = name or getattr(owner, "name", None) or _class_name(owner)
        if self._lookup(owner) is not None:
            raise DuplicateRegistrationError(owner_name)

        if base_path is None:
            base_path = getattr(owner, "prefix", None)
        if base_path:
            check_path(base_path)

        target = owner() if inspect.isclass(owner) else owner
        record = HandlerOwner(owner_name, base_path, target)

        self._owners.append(record)
        self._index[id(owner)] = record
        self._index[id(target)] = record

        logger.debug(f"Registered owner {owner_name} (base_path={base_path!r})")
        return record

    def declare_route(
        self,
        owner: OwnerRef,
        verb: Union[str, HTTPVerb],
        sub_path: str,
        handler_id: str,
    ) -> RouteDeclaration:
        """
        Append a route to an owner's ordered route list.

        Raises:
            UnknownOwnerError: If the owner was never registered
            InvalidRouteError: On an unsupported verb or a missing handler
            InvalidRoutePathError: On malformed placeholders
        """
        self._check_mutable("declare_route")
        record = self._require(owner)

        try:
            parsed = HTTPVerb.parse(verb)
        except ValueError:
            raise InvalidRouteError(record.name, f"unsupported verb {verb!r}") from None

        base_names = check_path(record.base_path or "")
        for placeholder in check_path(sub_path):
            if placeholder in base_names:
                raise InvalidRoutePathError(
                    join_path(record.base_path, sub_path),
                    f"duplicate placeholder '{placeholder}'",
                )

        if not callable(getattr(record.target, handler_id, None)):
            raise InvalidRouteError(
                record.name, f"handler '{handler_id}' is not a callable attribute",
            )

        declaration = RouteDeclaration(parsed, sub_path, handler_id)
        record._routes.append(declaration)
        return declaration

    def attach_metadata(
        self,
        owner: OwnerRef,
        handler_id: str,
        *,
        query: Any = None,
        body: Any = None,
        response: Any = None,
        middleware: Any = None,
    ) -> HandlerMetadata:
        """
        Merge contracts into a handler's metadata.

        Each call may supply any subset. Shapes are last-write-wins (an
        overwrite is logged). Middleware is appended in the order given.
        """
        self._check_mutable("attach_metadata")
        record = self._require(owner)
        current = record.metadata_for(handler_id)

        changes: Dict[str, Any] = {}
        for field_name, shape in (("query", query), ("body", body), ("response", response)):
            if shape is None:
                continue
            if getattr(current, field_name) is not None:
                logger.warning(
                    f"{record.name}.{handler_id}: {field_name} shape declared twice, "
                    f"the last declaration wins"
                )
            changes[field_name] = shape

        if middleware is not None:
            changes["middleware"] = current.middleware + _descriptors(middleware)

        updated = current.merged(**changes)
        record._metadata[handler_id] = updated
        return updated

    def include(
        self,
        owner: Any,
        *,
        base_path: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Optional[HandlerOwner]:
        """
        Register an owner from its decorator declarations.

        Lowers ``@GET``/``@body``/``@middleware``... metadata into explicit
        ``register_owner``, ``declare_route`` and ``attach_metadata`` calls.
        A registration error skips this owner with a warning and returns
        ``None``; the rest of the application keeps serving.
        """
        self._check_mutable("include")
        routes, contracts = collect_declarations(owner)
        record: Optional[HandlerOwner] = None

        try:
            record = self.register_owner(owner, base_path=base_path, name=name)
            for item in routes:
                self.declare_route(record, item["http_method"], item["path"], item["handler_id"])
            for handler_id, contract in contracts.items():
                self.attach_metadata(
                    record,
                    handler_id,
                    query=contract.get("query"),
                    body=contract.get("body"),
                    response=contract.get("response"),
                    middleware=contract.get("middleware") or None,
                )
        except RegistrationError as exc:
            if record is not None:
                self._discard(record)
            logger.warning(f"Skipping owner {name or _class_name(owner)}: {exc}")
            return None

        return record

    # ── Reads ───────────────────────────────────────────────────────────

    def owners(self) -> List[HandlerOwner]:
        """Owners in registration order."""
        return list(self._owners)

    def routes(self, owner: OwnerRef) -> Tuple[RouteDeclaration, ...]:
        """Routes of one owner in declaration order."""
        return self._require(owner).routes

    def metadata(self, owner: OwnerRef, handler_id: str) -> Optional[HandlerMetadata]:
        """Metadata of one handler, or ``None`` if nothing was attached."""
        return self._require(owner).metadata.get(handler_id)

    def get_owner(self, owner: OwnerRef) -> Optional[HandlerOwner]:
        return self._lookup(owner)

    # ── Lifecycle ───────────────────────────────────────────────────────

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "Registry":
        """End the build phase."""
        if not self._frozen:
            self._frozen = True
            logger.debug(f"Registry frozen with {len(self._owners)} owner(s)")
        return self

    def reset(self) -> None:
        """Empty and unfreeze the registry. Test isolation only."""
        self._owners.clear()
        self._index.clear()
        self._frozen = False

    # ── Internals ───────────────────────────────────────────────────────

    def _check_mutable(self, operation: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(operation)

    def _lookup(self, owner: OwnerRef) -> Optional[HandlerOwner]:
        if isinstance(owner, HandlerOwner):
            return owner if owner in self._owners else None
        return self._index.get(id(owner))

    def _require(self, owner: OwnerRef) -> HandlerOwner:
        record = self._lookup(owner)
        if record is None:
            label = owner.name if isinstance(owner, HandlerOwner) else _class_name(owner)
            raise UnknownOwnerError(label)
        return record

    def _discard(self, record: HandlerOwner) -> None:
        self._owners.remove(record)
        for key in [k for k, v in self._index.items() if v is record]:
            del self._index[key]

    def __len__(self) -> int:
        return len(self._owners)

    def __iter__(self) -> Iterator[HandlerOwner]:
        return iter(list(self._owners))

    def __contains__(self, owner: Any) -> bool:
        return self._lookup(owner) is not None

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"Registry(owners={len(self._owners)}, {state})"


def _class_name(owner: Any) -> str:
    return owner.__name__ if inspect.isclass(owner) else type(owner).__name__


def _descriptors(middleware: Any) -> Tuple[MiddlewareDescriptor, ...]:
    if isinstance(middleware, (list, tuple)):
        return tuple(as_descriptor(item) for item in middleware)
    return (as_descriptor(middleware),)


# ─── Process-wide default ───────────────────────────────────────────────────

_default_registry = Registry()


def get_default_registry() -> Registry:
    """Registry shared by the whole process."""
    return _default_registry


def reset_default_registry() -> Registry:
    """Empty the process-wide registry (test isolation only)."""
    _default_registry.reset()
    return _default_registry


__all__ = [
    "Registry",
    "get_default_registry",
    "reset_default_registry",
]
