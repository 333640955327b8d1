"""
CZar Token Vector Builder
=========================

The CZar "parser" does not build a syntax tree. It wraps every token
from the lexer in a leaf node and appends it to the children of a
single translation-unit node. That flat, mutable vector is the only
structure the feature passes and the emitter ever see.

Rewriting Conventions
---------------------
- Delete: empty a token's text (token.delete()); the slot remains, so
  indices held by a pass stay valid.
- Insert: splice new token nodes at an index with TranslationUnit.insert;
  every index at or after the insertion point shifts right.
- Replace: assign token.text.

Emission is the concatenation of every token's current text in order.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Iterator, List, Optional
import logging

from czar.lexer import CzarLexer, Token, TokenType

logger = logging.getLogger(__name__)


# =============================================================================
# Node Types
# =============================================================================

class NodeKind(Enum):
    """Discriminator for token-vector nodes."""
    TOKEN = auto()
    TRANSLATION_UNIT = auto()


@dataclass(eq=False)
class TokenNode:
    """Leaf node holding exactly one token."""
    token: Token
    kind: NodeKind = NodeKind.TOKEN


@dataclass(eq=False)
class TranslationUnit:
    """
    Root node of a CZar source file.

    Children are TokenNode leaves in source order. Indexing the unit
    returns the Token directly, which is what almost every pass wants:

        unit = parse_source("u8 x = 1;")
        unit[0].text      # 'u8'
        len(unit)         # number of tokens, EOF excluded

    Attributes:
        filename: Source file name used in diagnostics
        children: Ordered token nodes
    """
    filename: str = "<input>"
    children: List[TokenNode] = field(default_factory=list)
    kind: NodeKind = NodeKind.TRANSLATION_UNIT

    def __len__(self) -> int:
        return len(self.children)

    def __getitem__(self, index: int) -> Token:
        return self.children[index].token

    def __iter__(self) -> Iterator[Token]:
        return (node.token for node in self.children)

    @property
    def tokens(self) -> List[Token]:
        return [node.token for node in self.children]

    def append(self, token: Token) -> None:
        self.children.append(TokenNode(token))

    def insert(self, index: int, tokens: Iterable[Token]) -> int:
        """
        Splice tokens in before index.

        Returns:
            Number of tokens inserted
        """
        nodes = [TokenNode(token) for token in tokens]
        self.children[index:index] = nodes
        return len(nodes)

    def text(self, start: int = 0, end: Optional[int] = None) -> str:
        """Concatenate token text over [start, end)."""
        if end is None:
            end = len(self.children)
        return "".join(node.token.text for node in self.children[start:end])


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(source: str, filename: str = "<input>") -> TranslationUnit:
    """
    Lex source text into a translation unit.

    The EOF token terminates lexing and is not stored in the vector.
    """
    unit = TranslationUnit(filename=filename)
    for token in CzarLexer(source, filename).tokenize():
        if token.type is TokenType.EOF:
            break
        unit.append(token)

    logger.debug(f"Parsed {filename}: {len(unit)} tokens")
    return unit
