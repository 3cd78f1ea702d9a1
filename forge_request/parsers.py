"""Default request body parsers.

Each parser takes the raw request body and returns a decoded value, or
None when the body cannot be decoded. Malformed input never raises out of
a parser.
"""

import logging
import threading
from contextlib import contextmanager
from functools import partial
from types import SimpleNamespace
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl
from xml.parsers import expat

import orjson
from typing_extensions import TypeAlias

from forge_request.config import Config

logger = logging.getLogger(__name__)

BodyParser: TypeAlias = Callable[[bytes], Optional[Any]]

# Never a parsed body, whether returned by a parser or set directly
SCALAR_TYPES = (str, bytes, bytearray, int, float, complex, tuple, set, frozenset)

JSON = "application/json"
XML = "application/xml"
TEXT_XML = "text/xml"
FORM = "application/x-www-form-urlencoded"

DEFAULT_FORM_MAX_DEPTH = 64


def parse_json(raw_body: bytes) -> Optional[Union[Dict[str, Any], List[Any]]]:
    """Parse a JSON body.

    Only objects and arrays count as a parsed body; a top-level scalar or
    invalid JSON gives None.
    """
    try:
        result = orjson.loads(raw_body)
    except orjson.JSONDecodeError as e:
        logger.debug("Discarding malformed JSON body: %s", e)
        return None

    if not isinstance(result, (dict, list)):
        return None
    return result


def is_decoded_value(value: Any) -> bool:
    """Check that a value may stand as a parsed body.

    None, mappings, lists and record-like objects qualify; scalars and
    scalar collections (tuple, set) do not.
    """
    if value is None or isinstance(value, (Mapping, list)):
        return True
    return not isinstance(value, SCALAR_TYPES)


# --- URL-encoded forms -----------------------------------------------------

def is_index_key(key: str) -> bool:
    """Check whether a key names a list position ("0", "12", not "²")."""
    return key.isascii() and key.isdecimal()


def _normalize_name(name: str) -> str:
    return name.replace(" ", "_").replace(".", "_")


def _split_key(name: str, max_depth: int) -> Optional[List[str]]:
    """Split ``a[b][]`` into ``["a", "b", ""]``.

    Names follow the conventional query-string rules: leading spaces are
    dropped, spaces and dots in the base name become underscores, and an
    unbalanced first ``[`` becomes an underscore with the rest of the name
    kept as typed (``a[b`` is ``a_b``). Text after the last closing bracket
    is ignored.

    Returns None for names that must be dropped: an empty base name, or
    more bracket levels than ``max_depth``.
    """
    name = name.lstrip(" ")
    bracket = name.find("[")
    if bracket == -1:
        return [_normalize_name(name)] if name else None
    if bracket == 0:
        return None

    base = _normalize_name(name[:bracket])
    if name.find("]", bracket) == -1:
        return [f"{base}_{name[bracket + 1:]}"]

    segments = [base]
    position = bracket
    while position < len(name) and name[position] == "[":
        close = name.find("]", position)
        if close == -1:
            break
        segments.append(name[position + 1:close])
        position = close + 1

    if len(segments) - 1 > max_depth:
        return None
    return segments


def _next_index(container: Dict[str, Any]) -> str:
    indices = [int(key) for key in container if is_index_key(key)]
    return str(max(indices) + 1) if indices else "0"


def _assign(container: Dict[str, Any], segments: List[str], value: str) -> None:
    current = container
    last = len(segments) - 1
    for position, segment in enumerate(segments):
        key = _next_index(current) if segment == "" else segment
        if position == last:
            current[key] = value
            break
        child = current.get(key)
        if not isinstance(child, dict):
            child = {}
            current[key] = child
        current = child


def _listify(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    converted = {key: _listify(item) for key, item in value.items()}
    if converted and list(converted) == [str(i) for i in range(len(converted))]:
        return list(converted.values())
    return converted


def parse_query_string(query: str, max_depth: int = DEFAULT_FORM_MAX_DEPTH) -> Dict[str, Any]:
    """Decode a query string with bracketed nesting.

    ``a=1&b[x]=2&c[]=3&c[]=4`` decodes to
    ``{"a": "1", "b": {"x": "2"}, "c": ["3", "4"]}``. A repeated plain key
    keeps its last value and blank values are kept.

    Args:
        query: The query string, without the leading ``?``.
        max_depth: Maximum number of bracket levels; deeper keys are dropped.

    Returns:
        The decoded parameters. The top level is always a dict.
    """
    result: Dict[str, Any] = {}
    if not query:
        return result

    for name, value in parse_qsl(query, keep_blank_values=True):
        segments = _split_key(name, max_depth)
        if segments is None:
            logger.debug("Dropping query key %r", name)
            continue
        _assign(result, segments, value)

    return {key: _listify(value) for key, value in result.items()}


def parse_form(raw_body: bytes, max_depth: int = DEFAULT_FORM_MAX_DEPTH) -> Dict[str, Any]:
    """Parse an application/x-www-form-urlencoded body."""
    return parse_query_string(raw_body.decode("utf-8", errors="replace"), max_depth)


# --- XML -------------------------------------------------------------------

class EntitiesForbidden(ValueError):
    """Raised inside the XML parser when a document declares entities."""
    pass


class XmlParserSettings:
    """Process-wide XML parser flags.

    ``entity_loading_disabled`` rejects entity declarations and external
    entity references. ``collect_errors`` records parse errors in
    ``errors`` instead of raising them. Use ``safe_scope()`` to switch both
    on for one parse; the previous flags come back on every exit path.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.entity_loading_disabled = False
        self.collect_errors = False
        self.errors: List[str] = []

    def snapshot(self) -> Tuple[bool, bool]:
        return self.entity_loading_disabled, self.collect_errors

    @contextmanager
    def safe_scope(self) -> Iterator["XmlParserSettings"]:
        with self._lock:
            previous = self.snapshot()
            self.entity_loading_disabled = True
            self.collect_errors = True
            try:
                yield self
            finally:
                self.entity_loading_disabled, self.collect_errors = previous
                self.errors.clear()


xml_parser_settings = XmlParserSettings()


class _Node:
    __slots__ = ("tag", "attributes", "children", "text")

    def __init__(self, tag: str, attributes: Dict[str, str]) -> None:
        self.tag = tag
        self.attributes = attributes
        self.children: List["_Node"] = []
        self.text: List[str] = []


def _node_fields(node: _Node) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if node.attributes:
        fields["@attributes"] = dict(node.attributes)

    repeated = set()
    for child in node.children:
        value = _node_value(child)
        if child.tag not in fields:
            fields[child.tag] = value
        elif child.tag in repeated:
            fields[child.tag].append(value)
        else:
            fields[child.tag] = [fields[child.tag], value]
            repeated.add(child.tag)

    text = "".join(node.text)
    if not node.children and text.strip():
        fields["#text"] = text
    return fields


def _node_value(node: _Node) -> Any:
    if not node.children and not node.attributes:
        return "".join(node.text)
    return SimpleNamespace(**_node_fields(node))


def _forbid_entity_declaration(name, *args):
    raise EntitiesForbidden(f"Entity declaration '{name}' is not allowed")


def _forbid_external_entity(context, base, system_id, public_id):
    raise EntitiesForbidden(f"External entity '{system_id}' is not allowed")


def _parse_xml_document(raw_body: bytes, settings: XmlParserSettings) -> Optional[SimpleNamespace]:
    parser = expat.ParserCreate()
    parser.buffer_text = True
    if settings.entity_loading_disabled:
        parser.EntityDeclHandler = _forbid_entity_declaration
        parser.UnparsedEntityDeclHandler = _forbid_entity_declaration
        parser.ExternalEntityRefHandler = _forbid_external_entity

    stack: List[_Node] = []
    roots: List[_Node] = []

    def start(tag, attributes):
        node = _Node(tag, attributes)
        if stack:
            stack[-1].children.append(node)
        else:
            roots.append(node)
        stack.append(node)

    def end(tag):
        stack.pop()

    def characters(data):
        if stack:
            stack[-1].text.append(data)

    parser.StartElementHandler = start
    parser.EndElementHandler = end
    parser.CharacterDataHandler = characters

    try:
        parser.Parse(raw_body, True)
    except (expat.ExpatError, EntitiesForbidden) as e:
        if not settings.collect_errors:
            raise
        settings.errors.append(str(e))
        logger.debug("Discarding malformed XML body: %s", e)
        return None

    # The root is always a record, even when it only holds text
    return SimpleNamespace(**_node_fields(roots[0]))


def parse_xml(raw_body: bytes) -> Optional[SimpleNamespace]:
    """Parse an XML body into a record for its root element.

    Child elements become attributes of the record: text-only children
    are strings, repeated children are lists, and element attributes are
    kept under ``@attributes``. ``<a><b>1</b></a>`` gives a record whose
    ``b`` is ``"1"``.

    Entity declarations are refused and errors are collected rather than
    raised for the duration of the call, so a failed parse gives None.
    """
    with xml_parser_settings.safe_scope() as settings:
        return _parse_xml_document(raw_body, settings)


# --- Registry seeding -------------------------------------------------------

def default_parsers(config: Optional[Config] = None) -> Dict[str, BodyParser]:
    """Build the default media type to parser mapping.

    Args:
        config: Configuration selecting which parsers to seed. Defaults to
            a fresh Config.

    Returns:
        A new dict; callers may mutate it freely.
    """
    config = config or Config()
    enabled = config.parsers
    parsers: Dict[str, BodyParser] = {}

    if enabled.get("json", True):
        parsers[JSON] = parse_json
    if enabled.get("xml", True):
        parsers[XML] = parse_xml
        parsers[TEXT_XML] = parse_xml
    if enabled.get("form", True):
        max_depth = config.form_max_depth
        if max_depth == DEFAULT_FORM_MAX_DEPTH:
            parsers[FORM] = parse_form
        else:
            parsers[FORM] = partial(parse_form, max_depth=max_depth)

    return parsers
