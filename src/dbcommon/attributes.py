"""
Generic name/value attributes built from database columns.
"""
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from dbcommon.security import GuardedString
from dbcommon.utils import is_blank

SUPPORTED_TYPES: tuple[type, ...] = (str, int, float, Decimal, bool, bytes, GuardedString)


@dataclass(frozen=True, eq=False)
class Attribute:
    """One column value in a database-agnostic form.

    Names compare case-insensitively.
    """
    name: str
    value: Any = None

    def is_named(self, name: str) -> bool:
        return self.name.lower() == name.lower()

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Attribute):
            return NotImplemented
        return self.is_named(other.name) and self.value == other.value

    def __hash__(self) -> int:
        return hash(self.name.lower())


class AttributeBuilder:
    """Factory for attributes holding only supported value types.
    """

    @staticmethod
    def build(name: str, value: Any = None) -> Attribute:
        """Build an attribute.

        Raises ValueError for a blank name or an unsupported value type.
        """
        if is_blank(name):
            raise ValueError('Attribute name must not be blank')
        if value is not None and not isinstance(value, SUPPORTED_TYPES):
            raise ValueError(f'Attribute {name!r}: unsupported value type {type(value).__name__}')
        return Attribute(name, value)


def attributes_to_dict(attributes: Iterable[Attribute]) -> dict[str, Any]:
    """Map attribute names to values.
    """
    return {attr.name: attr.value for attr in attributes}
