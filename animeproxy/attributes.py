"""Parser for HLS directive attribute lists.

``#EXT-X-KEY:METHOD=AES-128,URI="key.bin",IV=0x1f`` splits into the tag
``#EXT-X-KEY`` and an attribute list. Each parsed attribute remembers where
its value sits in the original line so a caller can splice a replacement in
without touching anything else.
"""
from typing import NamedTuple


class AttributeListError(ValueError):
    pass


class Attribute(NamedTuple):
    name: str
    value: str
    quoted: bool
    # offsets of the value text in the parsed line, inside the quotes if any
    start: int
    end: int


class AttributeList(tuple):
    def get(self, name):
        for attr in self:
            if attr.name == name:
                return attr
        return None


def split_directive(line):
    """Return ``(tag, offset)`` where offset is the start of the attribute text, or -1."""
    colon = line.find(":")
    if colon == -1:
        return line, -1
    return line[:colon], colon + 1


def parse_attribute_list(text, offset=0):
    attrs = []
    pos = offset
    length = len(text)

    while pos < length:
        eq = text.find("=", pos)
        if eq == -1:
            # trailing junk without a value, e.g. a dangling comma
            break
        name = text[pos:eq].strip()
        pos = eq + 1

        if pos < length and text[pos] == '"':
            close = text.find('"', pos + 1)
            if close == -1:
                raise AttributeListError(f"unterminated quoted value for {name!r}")
            attrs.append(Attribute(name, text[pos + 1:close], True, pos + 1, close))
            pos = close + 1
            comma = text.find(",", pos)
            pos = length if comma == -1 else comma + 1
        else:
            comma = text.find(",", pos)
            end = length if comma == -1 else comma
            attrs.append(Attribute(name, text[pos:end], False, pos, end))
            pos = end + 1

    return AttributeList(attrs)
