"""
Execution Context
-----------------
Priority-ordered typed stores for injecting ambient objects into tool calls.

An ExecutionContext is a chain of ContextStores. Lookup by type (or type
plus key) scans the chain in order and returns the first match; later
stores holding the same (type, key) are shadowed, never merged
field-by-field. Nothing found is None, never an error.

At call time three chains are merged, highest priority first:

    call context > session context > toolkit default context

Contexts are immutable once built. merge() produces a new chain that
shares the underlying stores.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Type, TypeVar

T = TypeVar("T")

DEFAULT_KEY = ""

StoreKey = Tuple[type, str]


class ContextStore:
    """Immutable mapping of (type, key) to an instance of that type."""

    def __init__(self, objects: Optional[Mapping[StoreKey, Any]] = None):
        self._objects: Mapping[StoreKey, Any] = MappingProxyType(dict(objects or {}))

    def get(self, type_: Type[T], key: str = DEFAULT_KEY) -> Optional[T]:
        obj = self._objects.get((type_, key))
        if obj is not None and isinstance(obj, type_):
            return obj
        return None

    def contains(self, type_: type, key: Optional[str] = None) -> bool:
        """With no key, true if any instance of the type is stored."""
        if key is not None:
            return (type_, key) in self._objects
        return any(t is type_ for t, _ in self._objects)

    def keys(self) -> Iterator[StoreKey]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def __repr__(self) -> str:
        entries = ", ".join(
            f"{t.__name__}[{k!r}]" if k else t.__name__ for t, k in self._objects
        )
        return f"ContextStore({entries})"


class ContextBuilder:
    """
    Fluent builder for a single-store ExecutionContext.

    Usage:
        ctx = (ExecutionContext.builder()
               .register(db_config)
               .register(admin, key="admin")
               .register(impl, as_type=UserService)
               .build())
    """

    def __init__(self):
        self._objects: Dict[StoreKey, Any] = {}

    def register(
        self,
        obj: Any,
        *,
        key: str = DEFAULT_KEY,
        as_type: Optional[type] = None
    ) -> "ContextBuilder":
        """
        Register an object under its own type, or under as_type.

        Raises:
            ValueError: If obj or key is None
            TypeError: If obj is not an instance of as_type
        """
        if obj is None:
            raise ValueError("Context object must not be None")
        if key is None:
            raise ValueError("Context key must not be None")

        type_ = as_type or type(obj)
        if not isinstance(obj, type_):
            raise TypeError(f"Object must be an instance of {type_.__name__}")

        self._objects[(type_, key)] = obj
        return self

    def build(self) -> "ExecutionContext":
        return ExecutionContext(ContextStore(self._objects))


class ExecutionContext:
    """Ordered chain of ContextStores, first store has highest priority."""

    def __init__(self, *stores: ContextStore):
        self._stores: Tuple[ContextStore, ...] = tuple(stores)

    @staticmethod
    def builder() -> ContextBuilder:
        return ContextBuilder()

    @classmethod
    def empty(cls) -> "ExecutionContext":
        return cls()

    @classmethod
    def of(cls, *objects: Any, **keyed: Any) -> "ExecutionContext":
        """
        Shorthand for a one-store context.

        Positional objects are registered under their type with the
        default key; keyword objects under their type with that key.
        """
        builder = ContextBuilder()
        for obj in objects:
            builder.register(obj)
        for key, obj in keyed.items():
            builder.register(obj, key=key)
        return builder.build()

    @classmethod
    def merge(cls, *contexts: Optional["ExecutionContext"]) -> "ExecutionContext":
        """
        Concatenate chains; earlier arguments take priority.

        None arguments are skipped. Stores are shared, not copied.
        """
        stores = tuple(
            store
            for context in contexts if context is not None
            for store in context._stores
        )
        return cls(*stores)

    @property
    def stores(self) -> Tuple[ContextStore, ...]:
        return self._stores

    def get(self, type_: Type[T], key: str = DEFAULT_KEY) -> Optional[T]:
        for store in self._stores:
            obj = store.get(type_, key)
            if obj is not None:
                return obj
        return None

    def contains(self, type_: type, key: Optional[str] = None) -> bool:
        return any(store.contains(type_, key) for store in self._stores)

    def __len__(self) -> int:
        return len(self._stores)

    def __repr__(self) -> str:
        return f"ExecutionContext({len(self._stores)} stores)"
