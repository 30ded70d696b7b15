"""Length-form rewriting for BER/DER element trees.

The provider's validator only accepts client secrets whose three outermost
constructed elements use indefinite length while everything below them stays
definite. asn1crypto always emits DER, so the encoder dumps DER first and
this module rewrites the selected elements afterwards. The same goes for
SET OF fields whose member order must be kept: DER sorts them, so they are
spliced in pre-encoded.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

from asn1crypto import parser

CONSTRUCTED = 1
INDEFINITE_LENGTH = b"\x80"
END_OF_CONTENTS = b"\x00\x00"


@dataclass(frozen=True)
class Element:
    class_: int
    method: int
    tag: int
    header: bytes
    contents: bytes
    trailer: bytes

    @property
    def identifier(self) -> bytes:
        # High tag numbers continue while bit 8 is set
        if self.header[0] & 0x1F != 0x1F:
            return self.header[:1]
        i = 1
        while self.header[i] & 0x80:
            i += 1
        return self.header[: i + 1]

    @property
    def indefinite(self) -> bool:
        return self.header[len(self.identifier):] == INDEFINITE_LENGTH

    @property
    def encoded(self) -> bytes:
        return self.header + self.contents + self.trailer

    def __len__(self) -> int:
        return len(self.header) + len(self.contents) + len(self.trailer)


def parse_element(data: bytes, offset: int = 0) -> Element:
    class_, method, tag, header, contents, trailer = parser.parse(data[offset:], strict=False)
    return Element(class_, method, tag, header, contents, trailer)


def iter_children(element: Element) -> Iterator[Element]:
    if element.method != CONSTRUCTED:
        return
    pos = 0
    body = element.contents
    while pos < len(body):
        child = parse_element(body, pos)
        pos += len(child)
        yield child


def walk(der: bytes) -> Iterator[Tuple[Tuple[int, ...], Element]]:
    """Yield ``(path, element)`` depth first; ``path`` holds child indexes from the root."""

    def _walk(el: Element, path: Tuple[int, ...]):
        yield path, el
        for i, child in enumerate(iter_children(el)):
            yield from _walk(child, path + (i,))

    yield from _walk(parse_element(der), ())


def encode_length(n: int) -> bytes:
    if n < 0x80:
        return bytes([n])
    b = n.to_bytes((n.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(b)]) + b


def encode_element(identifier: bytes, contents: bytes) -> bytes:
    return identifier + encode_length(len(contents)) + contents


def _insert(el: Element, path: Sequence[int], index: int, encoded: bytes) -> bytes:
    if el.method != CONSTRUCTED:
        raise ValueError(f"cannot add children to primitive tag {el.tag}")
    children = [child.encoded for child in iter_children(el)]
    if path:
        if path[0] >= len(children):
            raise ValueError(f"element has no child {path[0]}")
        children[path[0]] = _insert(parse_element(children[path[0]]), path[1:], index, encoded)
    else:
        if index > len(children):
            raise ValueError(f"element has only {len(children)} children")
        children.insert(index, encoded)
    return encode_element(el.identifier, b"".join(children))


def insert_child(der: bytes, path: Sequence[int], index: int, encoded: bytes) -> bytes:
    """Insert the pre-encoded ``encoded`` as child ``index`` of the element at ``path``.

    Lengths of the element and its ancestors are re-encoded in definite form.
    The new child's bytes are taken as is.
    """
    return _insert(parse_element(der), tuple(path), index, encoded)


def _rewrite(el: Element, path: Sequence[int]) -> bytes:
    if el.method != CONSTRUCTED:
        raise ValueError(f"cannot use indefinite length on primitive tag {el.tag}")
    children = list(iter_children(el))
    if path and path[0] >= len(children):
        raise ValueError(f"element has no child {path[0]}")
    body = b"".join(
        _rewrite(child, path[1:]) if path and i == path[0] else child.encoded
        for i, child in enumerate(children)
    )
    return el.identifier + INDEFINITE_LENGTH + body + END_OF_CONTENTS


def force_indefinite(der: bytes, path: Sequence[int] = ()) -> bytes:
    """Re-encode the root and every element along ``path`` with indefinite length.

    ``path`` lists child indexes, so ``(1, 0)`` touches the root, its second
    child and that child's first child. Siblings keep their original bytes.
    """
    return _rewrite(parse_element(der), tuple(path))


def indefinite_paths(der: bytes) -> list[Tuple[int, ...]]:
    return [path for path, el in walk(der) if el.indefinite]


__all__ = [
    "Element",
    "parse_element",
    "iter_children",
    "walk",
    "encode_length",
    "encode_element",
    "insert_child",
    "force_indefinite",
    "indefinite_paths",
]
