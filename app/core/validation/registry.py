"""
Message-type registry for the transit movements validator.

Maps a customs message-type code to the schema document that constrains it
and to the validation engine (XML or JSON) that applies. The catalogue is
closed and fixed at build time; nothing is registered at request time.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

JSON_CODE_SUFFIX = "-JSON"
NCTS_NAMESPACE = "http://ncts.dgtaxud.ec"
JSON_ROOT_PREFIX = "n1:"


class SchemaKind(str, Enum):
    """Which validation engine a message type is evaluated with."""

    XML = "xml"
    JSON = "json"


@dataclass(frozen=True)
class MessageType:
    """
    One known message type within a namespace.

    Attributes:
        code: Message-type code, e.g. ``IE015``
        schema_path: Resource path of the schema document, relative to the
            package resources directory
        kind: Engine the schema is evaluated with
        root_node: Root element (XML) or top-level key stem (JSON)
        description: Human-readable name of the message
    """

    code: str
    schema_path: str
    kind: SchemaKind
    root_node: str
    description: str = ""

    @property
    def cache_key(self) -> Tuple[SchemaKind, str]:
        return self.kind, self.code

    @property
    def qualified_root(self) -> str:
        """Root element in Clark notation (XML) or the top-level key (JSON)."""
        if self.kind is SchemaKind.XML:
            return f"{{{NCTS_NAMESPACE}}}{self.root_node}"
        return f"{JSON_ROOT_PREFIX}{self.root_node}"

    def __str__(self) -> str:
        return f"{self.code} ({self.kind.value})"


# Catalogue of supported messages: (code, root node, description)
_CATALOGUE: List[Tuple[str, str, str]] = [
    ("IE007", "CC007C", "Arrival notification"),
    ("IE013", "CC013C", "Declaration amendment"),
    ("IE014", "CC014C", "Declaration invalidation request"),
    ("IE015", "CC015C", "Declaration data"),
    ("IE044", "CC044C", "Unloading remarks"),
    ("IE170", "CC170C", "Presentation notification for the pre-lodged declaration"),
]


def _build_message_types(kind: SchemaKind) -> List[MessageType]:
    message_types = []
    for code, root_node, description in _CATALOGUE:
        if kind is SchemaKind.XML:
            schema_path = f"xsd/{root_node.lower()}.xsd"
        else:
            schema_path = f"json/{root_node.lower()}-schema.json"
        message_types.append(
            MessageType(
                code=code,
                schema_path=schema_path,
                kind=kind,
                root_node=root_node,
                description=description,
            )
        )
    return message_types


XML_MESSAGE_TYPES: List[MessageType] = _build_message_types(SchemaKind.XML)
JSON_MESSAGE_TYPES: List[MessageType] = _build_message_types(SchemaKind.JSON)


class MessageTypeRegistry:
    """
    Read-only lookup of message types by code, one namespace per kind.

    Codes must be unique within a namespace; the same code may appear once
    per kind.
    """

    def __init__(self, message_types: Optional[Iterable[MessageType]] = None):
        if message_types is None:
            message_types = [*XML_MESSAGE_TYPES, *JSON_MESSAGE_TYPES]

        self._by_kind: Dict[SchemaKind, Dict[str, MessageType]] = {
            kind: {} for kind in SchemaKind
        }
        for message_type in message_types:
            namespace = self._by_kind[message_type.kind]
            if message_type.code in namespace:
                raise ValueError(
                    f"Duplicate message type code '{message_type.code}' "
                    f"in {message_type.kind.value} namespace"
                )
            namespace[message_type.code] = message_type

        logger.debug(
            "Message type registry loaded: %s",
            {kind.value: len(types) for kind, types in self._by_kind.items()}
        )

    def resolve(self, code: str, kind: Optional[SchemaKind] = None) -> Optional[MessageType]:
        """
        Resolve a message-type code.

        Args:
            code: Message-type code. Without an explicit ``kind`` a ``-JSON``
                suffix selects the JSON namespace and any other code the XML
                namespace.
            kind: Namespace to look in. A ``-JSON`` suffix is accepted
                alongside an explicit JSON kind.

        Returns:
            The matching message type, or None when the code is not known
        """
        if code.endswith(JSON_CODE_SUFFIX) and kind in (None, SchemaKind.JSON):
            kind = SchemaKind.JSON
            code = code[:-len(JSON_CODE_SUFFIX)]
        elif kind is None:
            kind = SchemaKind.XML
        return self._by_kind[kind].get(code)

    def codes(self, kind: SchemaKind) -> List[str]:
        return sorted(self._by_kind[kind])

    def __iter__(self) -> Iterator[MessageType]:
        for kind in SchemaKind:
            yield from self._by_kind[kind].values()

    def __len__(self) -> int:
        return sum(len(types) for types in self._by_kind.values())


_registry: Optional[MessageTypeRegistry] = None


def get_message_type_registry() -> MessageTypeRegistry:
    """Get the process-wide message type registry."""
    global _registry
    if _registry is None:
        _registry = MessageTypeRegistry()
    return _registry
