"""Stack-based writer for the product XML dialect.

The builder keeps an implicit root container and a stack of open groups.
``open_group`` nests a new group under the current top of the stack,
``add_tag`` appends a leaf to it and ``close_group`` pops it again. Children
and attributes keep their insertion order so identical input always
serializes to identical bytes.

Examples
--------
>>> from product_forge.document import DocumentBuilder
>>> doc = DocumentBuilder()
>>> doc.open_group("product", {"productid": "demo", "active": 1})
>>> doc.add_tag("title", "Demo")
>>> doc.close_group()
>>> print(doc.serialize())
<product productid="demo" active="1">
	<title>Demo</title>
</product>
<BLANKLINE>
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from xml.sax.saxutils import escape as xml_escape
from xml.sax.saxutils import quoteattr

from .errors import StructuralError

AttributeValue = str | int | None
Attributes = typ.Mapping[str, AttributeValue]

_INDENT = "\t"


@dc.dataclass(slots=True)
class DocumentTag:
    """Leaf node carrying text content."""

    name: str
    text: str = ""
    attributes: dict[str, AttributeValue] = dc.field(default_factory=dict)
    escape: bool = False


@dc.dataclass(slots=True)
class DocumentGroup:
    """Group node holding ordered child nodes."""

    name: str
    attributes: dict[str, AttributeValue] = dc.field(default_factory=dict)
    children: list[DocumentGroup | DocumentTag] = dc.field(default_factory=list)


DocumentNode = DocumentGroup | DocumentTag


class DocumentBuilder:
    """Assemble a nested group/tag tree and render it as markup."""

    def __init__(self) -> None:
        self.root = DocumentGroup(name="")
        self._stack: list[DocumentGroup] = [self.root]

    @property
    def depth(self) -> int:
        """Return the number of currently open groups, excluding the root."""
        return len(self._stack) - 1

    def open_group(self, name: str, attributes: Attributes | None = None) -> None:
        """Open a group under the current top of the stack and descend into it."""
        group = DocumentGroup(name=name, attributes=dict(attributes or {}))
        self._stack[-1].children.append(group)
        self._stack.append(group)

    def close_group(self) -> None:
        """Close the innermost open group.

        Raises
        ------
        StructuralError
            If no group is open.
        """
        if len(self._stack) == 1:
            msg = "close_group() called with no open group"
            raise StructuralError(msg)
        self._stack.pop()

    def add_tag(
        self,
        name: str,
        text: object = "",
        attributes: Attributes | None = None,
        *,
        escape: bool = False,
    ) -> None:
        """Append a leaf tag to the current group.

        Parameters
        ----------
        name : str
            Tag name.
        text : object, optional
            Content; ``None`` renders as an empty tag.
        attributes : Mapping, optional
            Attributes rendered in insertion order.
        escape : bool, optional
            Wrap the content in a CDATA section so embedded markup survives a
            downstream parser untouched.
        """
        content = "" if text is None else str(text)
        self._stack[-1].children.append(
            DocumentTag(
                name=name,
                text=content,
                attributes=dict(attributes or {}),
                escape=escape,
            )
        )

    def serialize(self, encoding: str | None = None) -> str:
        """Render the tree.

        Parameters
        ----------
        encoding : str, optional
            Target encoding of the document. CDATA content the encoding
            cannot represent is written as character references between
            CDATA sections, since references inside CDATA are not decoded.

        Raises
        ------
        StructuralError
            If groups are still open.
        """
        if self.depth:
            names = ", ".join(group.name for group in self._stack[1:])
            msg = f"Cannot serialize with unclosed groups: {names}"
            raise StructuralError(msg)
        lines: list[str] = []
        for child in self.root.children:
            _render(child, 0, lines, encoding)
        return "".join(f"{line}\n" for line in lines)

    def document(self, encoding: str) -> str:
        """Return the serialized tree prefixed by the XML declaration."""
        prolog = f'<?xml version="1.0" encoding="{encoding}"?>'
        return f"{prolog}\n\n{self.serialize(encoding)}"


def _render(
    node: DocumentNode, level: int, lines: list[str], encoding: str | None
) -> None:
    indent = _INDENT * level
    opening = f"{node.name}{_format_attributes(node.attributes)}"
    match node:
        case DocumentGroup(children=[]):
            lines.append(f"{indent}<{opening}>")
            lines.append(f"{indent}</{node.name}>")
        case DocumentGroup():
            lines.append(f"{indent}<{opening}>")
            for child in node.children:
                _render(child, level + 1, lines, encoding)
            lines.append(f"{indent}</{node.name}>")
        case DocumentTag(text=""):
            lines.append(f"{indent}<{opening} />")
        case DocumentTag():
            body = (
                _cdata(node.text, encoding) if node.escape else xml_escape(node.text)
            )
            lines.append(f"{indent}<{opening}>{body}</{node.name}>")


def _format_attributes(attributes: Attributes) -> str:
    parts = [
        f" {key}={quoteattr('' if value is None else str(value))}"
        for key, value in attributes.items()
    ]
    return "".join(parts)


def _encodable(text: str, encoding: str | None) -> bool:
    if encoding is None:
        return True
    try:
        text.encode(encoding)
    except UnicodeEncodeError:
        return False
    return True


def _cdata(text: str, encoding: str | None = None) -> str:
    """Wrap ``text`` in CDATA, splitting any embedded terminator.

    Characters ``encoding`` cannot hold close the section and are written as
    character references before a new section opens.

    Examples
    --------
    >>> _cdata("a]]>b")
    '<![CDATA[a]]]]><![CDATA[>b]]>'
    >>> _cdata("<b>\\u20ac</b>", "ISO-8859-1")
    '<![CDATA[<b>]]>&#8364;<![CDATA[</b>]]>'
    """
    body = text.replace("]]>", "]]]]><![CDATA[>")
    if _encodable(body, encoding):
        return f"<![CDATA[{body}]]>"
    parts: list[str] = []
    run: list[str] = []
    for char in body:
        if _encodable(char, encoding):
            run.append(char)
            continue
        if run:
            parts.append(f"<![CDATA[{''.join(run)}]]>")
            run = []
        parts.append(f"&#{ord(char)};")
    if run:
        parts.append(f"<![CDATA[{''.join(run)}]]>")
    return "".join(parts)


__all__ = [
    "DocumentBuilder",
    "DocumentGroup",
    "DocumentNode",
    "DocumentTag",
]
