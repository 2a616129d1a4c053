"""
Caller-declared parameters accumulated between executions.

None is an explicit SQL NULL. UNSET marks "no value supplied" (typical for
output slots); both bind as NULL and are never dropped from the command.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from sqldataaccess.core.errors import DuplicateParameterError


class ParameterDirection(str, Enum):
    INPUT = "IN"
    OUTPUT = "OUT"
    INPUT_OUTPUT = "INOUT"
    RETURN_VALUE = "RETURN"

    @property
    def is_output(self) -> bool:
        return self is not ParameterDirection.INPUT


class _Unset:
    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

_NAME_PREFIXES = "@:%"


def bind_key(name: str) -> str:
    """Name as used in the bind mapping: ``@Ret_Code`` -> ``Ret_Code``."""
    return name.lstrip(_NAME_PREFIXES)


def same_name(a: str, b: str) -> bool:
    """Parameter names compare case-insensitively, ignoring the marker prefix."""
    return bind_key(a).casefold() == bind_key(b).casefold()


@dataclass
class Parameter:
    name: str
    value: Any = UNSET
    direction: ParameterDirection = ParameterDirection.INPUT

    @property
    def key(self) -> str:
        return bind_key(self.name)

    @property
    def bind_value(self) -> Any:
        """Value handed to the driver; UNSET becomes NULL."""
        return None if self.value is UNSET else self.value


class ParameterSet:
    """
    Ordered parameters for one execution.

    add() does no uniqueness check; a bind key used twice is rejected when
    the mapping is built for execution.
    """

    def __init__(self, parameters: list[Parameter] | None = None) -> None:
        self._items: list[Parameter] = list(parameters or [])

    def add(
        self,
        name: str,
        value: Any = UNSET,
        direction: ParameterDirection = ParameterDirection.INPUT,
    ) -> Parameter:
        parm = Parameter(name=name, value=value, direction=direction)
        self._items.append(parm)
        return parm

    def clear(self) -> None:
        self._items.clear()

    def get(self, name: str) -> Parameter | None:
        for parm in self._items:
            if same_name(parm.name, name):
                return parm
        return None

    def to_mapping(self) -> dict[str, Any]:
        """Bind mapping for pyformat drivers (``%(name)s``)."""
        mapping: dict[str, Any] = {}
        for p in self._items:
            if p.key in mapping:
                raise DuplicateParameterError(p.key)
            mapping[p.key] = p.bind_value
        return mapping

    def to_sequence(self) -> list[Any]:
        """Bind list for qmark drivers, in declaration order."""
        return [p.bind_value for p in self._items]

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"ParameterSet({self._items!r})"
