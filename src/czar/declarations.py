"""
Declaration Shapes
==================

Several passes need to recognise the same small declaration grammar
on the flat token vector:

    [prefixes] Type [qualifiers] {*} name {[...]} terminator

where Type is a run of builtin type keywords (`unsigned long int`), an
aggregate reference (`struct Name`), or a single known type name, and
terminator is the first significant token after the declarator: `=`,
`;`, `,`, `)`, `:` or a trailing `#defer` directive.

This module finds those shapes; it never rewrites anything.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set

from czar.lexer import TokenType
from czar.parser import TranslationUnit
from czar.scanner import (
    AGGREGATE_KEYWORDS,
    DECLARATION_PREFIXES,
    OPENERS,
    STATEMENT_KEYWORDS,
    TYPE_KEYWORDS,
    match_forward,
    next_significant,
    prev_significant,
)


# Common library types that follow no naming convention
LIBRARY_TYPE_NAMES = frozenset({"FILE"})

TYPE_QUALIFIERS = frozenset({"const", "volatile", "restrict", "__restrict", "mut"})


# =============================================================================
# Declaration Record
# =============================================================================

@dataclass
class Declaration:
    """
    One declarator found in the token vector.

    Attributes:
        start: Index of the first token (prefixes included)
        type_start: Index of the first type token
        type_end: Index of the last type token
        name_index: Index of the declared identifier
        terminator: Index of the token ending the declarator
        prefixes: Storage classes and qualifiers before the type
        pointers: Indices of '*' tokens between type and name
        mut_index: Index of the 'mut' token, if any
    """
    start: int
    type_start: int
    type_end: int
    name_index: int
    terminator: int
    prefixes: List[str] = field(default_factory=list)
    pointers: List[int] = field(default_factory=list)
    mut_index: Optional[int] = None
    is_array: bool = False

    @property
    def is_pointer(self) -> bool:
        return bool(self.pointers)

    @property
    def is_mut(self) -> bool:
        return self.mut_index is not None

    def type_text(self, unit: TranslationUnit) -> str:
        """Type as written, without prefixes, pointer stars or mut."""
        words = []
        for i in range(self.type_start, self.type_end + 1):
            token = unit[i]
            if token.is_trivia() or token.text in TYPE_QUALIFIERS:
                continue
            words.append(token.text)
        return " ".join(words)

    def full_type_text(self, unit: TranslationUnit) -> str:
        text = self.type_text(unit)
        if self.pointers:
            text += " " + "*" * len(self.pointers)
        return text

    def name(self, unit: TranslationUnit) -> str:
        return unit[self.name_index].text

    def terminator_text(self, unit: TranslationUnit) -> str:
        if self.terminator >= len(unit):
            return ""
        return unit[self.terminator].text


# =============================================================================
# Type Name Collection
# =============================================================================

def _typedef_name(unit: TranslationUnit, start: int) -> Optional[str]:
    """Name introduced by the typedef statement starting at start."""
    depth = 0
    last_ident = None
    pointer_name = None
    for i in range(start + 1, len(unit)):
        token = unit[i]
        if token.type is TokenType.PUNCTUATION:
            if token.text in OPENERS:
                depth += 1
                if token.text == "(" and pointer_name is None:
                    star = next_significant(unit, i + 1)
                    name = next_significant(unit, star + 1)
                    if star < len(unit) and unit[star].is_op("*") and unit[name].is_identifier():
                        pointer_name = unit[name].text
            elif token.text in (")", "]", "}"):
                depth -= 1
            elif token.text == ";" and depth == 0:
                return pointer_name or last_ident
        elif depth == 0 and token.is_identifier():
            last_ident = token.text
    return None


def collect_type_names(unit: TranslationUnit, extra: Optional[Set[str]] = None) -> Set[str]:
    """
    Every name usable as a declaration type in unit.

    Includes the builtin type keywords, aggregate tags and their
    _s/_t forms, typedef names, identifiers ending in _t and any
    names passed in extra.
    """
    names = set(TYPE_KEYWORDS) | set(LIBRARY_TYPE_NAMES)
    if extra:
        names |= set(extra)

    for i, token in enumerate(unit):
        if not token.is_identifier():
            continue
        text = token.text
        if text.endswith("_t") and len(text) > 2:
            names.add(text)
        elif text in AGGREGATE_KEYWORDS:
            tag = next_significant(unit, i + 1)
            if tag < len(unit) and unit[tag].is_identifier():
                tag_text = unit[tag].text
                names.add(tag_text)
                for suffix in ("_s", "_e"):
                    if tag_text.endswith(suffix):
                        names.add(tag_text[:-len(suffix)])
        elif text == "typedef":
            name = _typedef_name(unit, i)
            if name:
                names.add(name)

    return names


# =============================================================================
# Declaration Parsing
# =============================================================================

def _skip_qualifiers(unit: TranslationUnit, index: int, found: List[int]) -> int:
    index = next_significant(unit, index)
    while index < len(unit) and unit[index].is_identifier() and unit[index].text in TYPE_QUALIFIERS:
        found.append(index)
        index = next_significant(unit, index + 1)
    return index


def parse_declaration(
    unit: TranslationUnit,
    index: int,
    type_names: Set[str],
    limit: Optional[int] = None,
) -> Optional[Declaration]:
    """
    Recognise a declaration whose first token is at index.

    Args:
        unit: Token vector
        index: Candidate first token (prefix or type)
        type_names: Names accepted as a single-token type
        limit: Do not scan at or beyond this index

    Returns:
        The Declaration, or None if the tokens do not have that shape
    """
    end = len(unit) if limit is None else min(limit, len(unit))
    i = next_significant(unit, index)
    if i >= end:
        return None

    start = i
    prefixes = []
    mut_index = None

    # Storage classes and leading qualifiers
    while i < end and unit[i].is_identifier() and unit[i].text in DECLARATION_PREFIXES:
        if unit[i].text == "mut":
            mut_index = i
        prefixes.append(unit[i].text)
        i = next_significant(unit, i + 1)
    if i >= end or not unit[i].is_identifier():
        return None

    # Type
    type_start = i
    text = unit[i].text
    if text in AGGREGATE_KEYWORDS:
        tag = next_significant(unit, i + 1)
        if tag >= end or not unit[tag].is_identifier():
            return None
        type_end = tag
        i = next_significant(unit, tag + 1)
        if i < end and unit[i].is_punct("{"):
            return None
    elif text in TYPE_KEYWORDS:
        type_end = i
        i = next_significant(unit, i + 1)
        while i < end and unit[i].is_identifier() and unit[i].text in TYPE_KEYWORDS:
            type_end = i
            i = next_significant(unit, i + 1)
    elif text in type_names and text not in STATEMENT_KEYWORDS:
        type_end = i
        i = next_significant(unit, i + 1)
    else:
        return None

    # Qualifiers and pointer stars
    qualifiers: List[int] = []
    pointers = []
    i = _skip_qualifiers(unit, i, qualifiers)
    while i < end and unit[i].is_op("*"):
        pointers.append(i)
        i = _skip_qualifiers(unit, i + 1, qualifiers)
    for q in qualifiers:
        if unit[q].text == "mut" and mut_index is None:
            mut_index = q

    # Declarator name
    if i >= end or not unit[i].is_identifier():
        return None
    name_text = unit[i].text
    if name_text in STATEMENT_KEYWORDS or name_text in TYPE_KEYWORDS or name_text in AGGREGATE_KEYWORDS:
        return None
    name_index = i

    # Array dimensions
    i = next_significant(unit, i + 1)
    is_array = False
    while i < end and unit[i].is_punct("["):
        is_array = True
        i = next_significant(unit, match_forward(unit, i) + 1)

    if i >= end:
        return None
    terminator = unit[i]
    if terminator.type is TokenType.PREPROCESSOR:
        pass
    elif terminator.is_op("=") or terminator.is_op(":"):
        pass
    elif terminator.type is TokenType.PUNCTUATION and terminator.text in (";", ",", ")"):
        pass
    else:
        return None

    return Declaration(
        start=start,
        type_start=type_start,
        type_end=type_end,
        name_index=name_index,
        terminator=i,
        prefixes=prefixes,
        pointers=pointers,
        mut_index=mut_index,
        is_array=is_array,
    )


def next_declarator(unit: TranslationUnit, comma_index: int, limit: Optional[int] = None) -> Optional[int]:
    """
    After the ',' of a multi-declaration, return the next declared name.

    Skips pointer stars and qualifiers; returns None on any other shape.
    """
    end = len(unit) if limit is None else min(limit, len(unit))
    i = next_significant(unit, comma_index + 1)
    while i < end and (unit[i].is_op("*") or unit[i].text in TYPE_QUALIFIERS):
        i = next_significant(unit, i + 1)
    if i < end and unit[i].is_identifier():
        return i
    return None


def declaration_at_statement(
    unit: TranslationUnit,
    index: int,
    type_names: Set[str],
) -> Optional[Declaration]:
    """parse_declaration, only if index begins a statement."""
    prev = prev_significant(unit, index)
    if prev >= 0:
        token = unit[prev]
        if token.type is not TokenType.PREPROCESSOR and not token.is_op(":") and not (
            token.type is TokenType.PUNCTUATION and token.text in (";", "{", "}")
        ):
            return None
    return parse_declaration(unit, index, type_names)
