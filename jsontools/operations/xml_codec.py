"""
jsontools/operations/xml_codec.py

WHAT THIS FILE IS FOR
---------------------
XML <-> Tree conversion on top of lxml.

MAPPING CONVENTIONS
-------------------
- Attributes are keys prefixed with "@_"           <item id="3">  -> {"@_id": 3}
- Text of an element that also has attributes or
  children lives under "#text"
- A leaf element (no attributes, no children) becomes its text, typed
  by coerce_scalar(); an empty leaf becomes ""
- Repeated child tags collapse into a list under that tag
- Namespaced tags keep their prefix ("ns:tag")
- Comments and processing instructions are dropped

On the way out the whole tree is wrapped in a single root element. A list
under a key becomes repeated elements with that tag; a list directly under
the root (or inside another list) becomes <item> children.

SAFETY
------
The parser never resolves entities, loads DTDs or touches the network.
"""

from __future__ import annotations

from typing import Any, Dict

from lxml import etree

from jsontools.operations.csv_codec import coerce_scalar
from jsontools.operations.errors import ParseError, SerializeError

ATTRIBUTE_PREFIX = "@_"
TEXT_NODE = "#text"
LIST_ITEM_TAG = "item"


def make_xml_parser() -> etree.XMLParser:
    # input is always decoded text re-encoded as UTF-8; any declared encoding is overridden
    return etree.XMLParser(
        encoding="utf-8",
        recover=False,
        resolve_entities=False,
        load_dtd=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        huge_tree=False,
    )


def _local_name(node: etree._Element, name: str) -> str:
    qname = etree.QName(name)
    if qname.namespace is None:
        return qname.localname
    prefix = next((p for p, uri in (node.nsmap or {}).items() if uri == qname.namespace and p), None)
    return f"{prefix}:{qname.localname}" if prefix else qname.localname


def _element_text(element: etree._Element) -> str:
    pieces = [element.text or ""]
    pieces.extend(child.tail or "" for child in element)
    return " ".join(piece.strip() for piece in pieces if piece.strip())


def _element_to_tree(element: etree._Element) -> Any:
    children = [child for child in element if isinstance(child.tag, str)]
    text = _element_text(element)

    if not children and not element.attrib:
        return coerce_scalar(text) if text else ""

    node: Dict[str, Any] = {}
    for name, value in element.attrib.items():
        node[ATTRIBUTE_PREFIX + _local_name(element, name)] = coerce_scalar(value)

    for child in children:
        key = _local_name(child, child.tag)
        value = _element_to_tree(child)
        if key not in node:
            node[key] = value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]

    if text:
        node[TEXT_NODE] = coerce_scalar(text)

    return node


def parse_xml(text: str) -> Dict[str, Any]:
    try:
        root = etree.fromstring(text.encode("utf-8"), make_xml_parser())
    except etree.XMLSyntaxError as exc:
        raise ParseError(f"Invalid XML: {exc}") from exc

    return {_local_name(root, root.tag): _element_to_tree(root)}


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _fill(element: etree._Element, value: Any) -> None:
    if value is None:
        return

    if isinstance(value, list):
        for item in value:
            _fill(etree.SubElement(element, LIST_ITEM_TAG), item)
        return

    if not isinstance(value, dict):
        element.text = _scalar_text(value)
        return

    for key, child in value.items():
        if key.startswith(ATTRIBUTE_PREFIX):
            if child is not None:
                element.set(key[len(ATTRIBUTE_PREFIX) :], _scalar_text(child))
        elif key == TEXT_NODE:
            if child is not None:
                element.text = _scalar_text(child)
        elif isinstance(child, list):
            for item in child:
                _fill(etree.SubElement(element, key), item)
        else:
            _fill(etree.SubElement(element, key), child)


def to_xml(data: Any, *, root_element: str = "root", pretty: bool = True, indent: int = 2) -> str:
    try:
        root = etree.Element(root_element)
        _fill(root, data)
    except (ValueError, TypeError) as exc:
        # lxml rejects invalid tag/attribute names and non-XML characters
        raise SerializeError(f"Failed to build XML: {exc}") from exc

    if pretty:
        etree.indent(root, space=" " * indent)

    return etree.tostring(root, encoding="unicode")

