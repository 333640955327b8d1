"""
Mutability
==========

CZar values are immutable unless declared `mut`. This pass turns that
rule into C qualifiers and rejects writes to immutable names.

Rewrites
--------
| CZar                    | C                                 |
|-------------------------|-----------------------------------|
| `mut u8 n = 0;`         | `u8 n = 0;`                       |
| `u8 n = 0;` (local)     | `const u8 n = 0;`                 |
| `u8 *p` (parameter)     | `const u8 * const p`              |
| `mut u8 *p` (parameter) | `u8 *p`                           |

File-scope declarations only lose their `mut`. Method receivers are
left unqualified.

Diagnostics
-----------
- Any `const` written in source.
- `mut` on a struct or union field.
- `mut` on a parameter that is not a pointer.
- Assignment, compound assignment, `++` or `--` applied to an immutable
  local or parameter. Only the bare name is checked; writes through
  `.`, `->`, `*` or `[]` are left to the C compiler.
"""

from typing import Dict, List, Set, Tuple
import logging

from czar.context import ScopeStack, TranslationContext, VariableInfo
from czar.declarations import Declaration, collect_type_names, parse_declaration
from czar.errors import MutabilityError
from czar.features.functions import find_signatures
from czar.lexer import Token, TokenType
from czar.parser import TranslationUnit
from czar.scanner import (
    ASSIGNMENT_OPERATORS,
    OPENERS,
    CLOSERS,
    delete_trailing_whitespace,
    find_statement_end,
    is_aggregate_brace,
    is_op_at,
    is_punct_at,
    is_statement_start,
    make_token,
    match_forward,
    next_significant,
    prev_significant,
    split_arguments,
    ws,
)

logger = logging.getLogger(__name__)


CONST_KEYWORD = "const"
MUT_KEYWORD = "mut"

ERR_CONST_KEYWORD = (
    "Invalid 'const' keyword. In CZar, everything is immutable by default. "
    "Use 'mut' for mutable declarations."
)
ERR_FIELD_MUT = (
    "Struct fields cannot have 'mut' qualifier. "
    "Mutability is determined by the struct instance."
)
ERR_MUT_PARAMETER = (
    "Mutable parameter must be a pointer to have side effects. "
    "Non-pointer parameters are passed by value. Use pointer type or remove 'mut'."
)

# Pending insertion: (index, tokens)
Edit = Tuple[int, List[Token]]


# =============================================================================
# Token Edits
# =============================================================================

def _drop_mut(unit: TranslationUnit, index: int) -> None:
    unit[index].delete()
    delete_trailing_whitespace(unit, index)


def _qualify(unit: TranslationUnit, decl: Declaration, edits: List[Edit]) -> None:
    """Queue `const` before the type, and after the last '*' of a pointer."""
    like = unit[decl.type_start]
    edits.append((decl.type_start, [make_token(CONST_KEYWORD, like=like), ws(" ", like)]))
    if decl.pointers:
        star = decl.pointers[-1]
        delete_trailing_whitespace(unit, star)
        edits.append((star + 1, [ws(" ", like), make_token(CONST_KEYWORD, like=like), ws(" ", like)]))


def _apply(unit: TranslationUnit, edits: List[Edit]) -> None:
    for index, tokens in sorted(edits, key=lambda edit: edit[0], reverse=True):
        unit.insert(index, tokens)


def _reject_const(ctx: TranslationContext) -> None:
    for token in ctx.unit:
        if token.is_identifier(CONST_KEYWORD):
            ctx.error(ERR_CONST_KEYWORD, token, MutabilityError)


def _top_level_commas(unit: TranslationUnit, start: int, end: int) -> List[int]:
    commas = []
    depth = 0
    for i in range(start, end):
        token = unit[i]
        if token.type is not TokenType.PUNCTUATION:
            continue
        if token.text in OPENERS:
            depth += 1
        elif token.text in CLOSERS:
            depth -= 1
        elif token.text == "," and depth == 0:
            commas.append(i)
    return commas


def _declared_names(unit: TranslationUnit, decl: Declaration) -> List[int]:
    """Name indices of every declarator in the statement of decl."""
    names = [decl.name_index]
    end = find_statement_end(unit, decl.terminator)
    for comma in _top_level_commas(unit, decl.terminator, end):
        i = next_significant(unit, comma + 1)
        while i < end and (unit[i].is_op("*") or unit[i].is_identifier(MUT_KEYWORD)):
            i = next_significant(unit, i + 1)
        if i < end and unit[i].is_identifier():
            names.append(i)
    return names


# =============================================================================
# Parameters
# =============================================================================

def _parameters(ctx: TranslationContext, type_names: Set[str], edits: List[Edit]) -> Dict[int, List[VariableInfo]]:
    """
    Qualify every function parameter.

    Returns:
        Parameter records keyed by the index of the list's ')'
    """
    unit = ctx.unit
    found: Dict[int, List[VariableInfo]] = {}

    for signature in find_signatures(unit):
        method = ctx.symbols.method_for_function(unit[signature.name_index].text)
        receiver = method.receiver if method is not None else None

        variables = []
        for start, end in split_arguments(unit, signature.open_paren, signature.close_paren):
            decl = parse_declaration(unit, start, type_names, limit=end + 1)
            if decl is None or decl.terminator != end:
                continue
            name = decl.name(unit)

            if decl.is_mut:
                if not decl.is_pointer and name != receiver:
                    ctx.error(ERR_MUT_PARAMETER, unit[decl.mut_index], MutabilityError)
                _drop_mut(unit, decl.mut_index)
                mutable = True
            elif name == receiver:
                mutable = True
            else:
                _qualify(unit, decl, edits)
                mutable = False

            variables.append(VariableInfo(
                name, mutable, unit[decl.name_index].line, decl.full_type_text(unit),
            ))
        found[signature.close_paren] = variables

    return found


# =============================================================================
# Bodies
# =============================================================================

class _BodyWalker:
    """
    Forward walk over the unit tracking block scopes.

    Declarations in function bodies and for-loop headers are qualified
    and recorded; every bare-name write is checked against the record
    of the innermost declaration in scope.
    """

    def __init__(self, ctx: TranslationContext, type_names: Set[str], parameters: Dict[int, List[VariableInfo]], edits: List[Edit]):
        self.ctx = ctx
        self.unit = ctx.unit
        self.type_names = type_names
        self.parameters = parameters
        self.edits = edits
        self.scopes = ScopeStack()
        self.declared: Set[int] = set()
        self.for_ends: List[int] = []
        self.increments: List[Tuple[int, int]] = []
        self.paren_depth = 0
        self.locals = 0

    def run(self) -> None:
        self.scopes.push("file")
        for i, token in enumerate(self.unit):
            if not token.is_trivia():
                self._visit(i, token)
            while self.for_ends and self.for_ends[-1] == i:
                self.for_ends.pop()
                self.scopes.pop()

    def _kind(self) -> str:
        return self.scopes.current.kind if self.scopes.current is not None else "file"

    def _in_function(self) -> bool:
        scope = self.scopes.current
        while scope is not None:
            if scope.kind == "function":
                return True
            if scope.kind == "aggregate":
                return False
            scope = scope.parent
        return False

    def _visit(self, i: int, token: Token) -> None:
        unit = self.unit
        if token.is_punct("{"):
            self._open_brace(i)
        elif token.is_punct("}"):
            self.scopes.pop()
        elif token.is_punct("("):
            self.paren_depth += 1
        elif token.is_punct(")"):
            self.paren_depth = max(0, self.paren_depth - 1)
        elif not token.is_identifier():
            pass
        elif token.text == MUT_KEYWORD and self._kind() == "aggregate":
            self.ctx.error(ERR_FIELD_MUT, token, MutabilityError)
        elif not self._in_function():
            pass
        elif token.text == "for" and is_punct_at(unit, next_significant(unit, i + 1), "("):
            self._open_for(i)
        elif self.paren_depth == 0 and is_statement_start(unit, i):
            decl = parse_declaration(unit, i, self.type_names)
            if decl is not None and decl.start == i:
                self._declare(decl)
            else:
                self._check_write(i)
        else:
            self._check_write(i)

    def _open_brace(self, i: int) -> None:
        unit = self.unit
        if is_aggregate_brace(unit, i):
            self.scopes.push("aggregate")
            return
        close_paren = prev_significant(unit, i)
        if self._kind() == "file" and close_paren in self.parameters:
            scope = self.scopes.push("function")
            for info in self.parameters[close_paren]:
                scope.declare(info)
            return
        self.scopes.push("block")

    def _open_for(self, i: int) -> None:
        unit = self.unit
        paren = next_significant(unit, i + 1)
        close = match_forward(unit, paren)
        if close >= len(unit):
            return

        self.scopes.push("for")
        body = next_significant(unit, close + 1)
        if is_punct_at(unit, body, "{"):
            end = match_forward(unit, body)
        else:
            end = find_statement_end(unit, body)
        self.for_ends.append(end)

        semicolons = [
            j for j in range(paren + 1, close)
            if unit[j].is_punct(";") and self._paren_level(paren, j) == 0
        ]
        if len(semicolons) == 2:
            self.increments.append((semicolons[1], close))

        decl = parse_declaration(unit, paren + 1, self.type_names, limit=close)
        if decl is not None:
            self._declare(decl, for_counter=True)

    def _paren_level(self, open_paren: int, index: int) -> int:
        depth = 0
        for j in range(open_paren + 1, index):
            token = self.unit[j]
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
        return depth

    def _declare(self, decl: Declaration, for_counter: bool = False) -> None:
        unit = self.unit
        if "extern" in decl.prefixes:
            return
        if decl.is_mut:
            mutable = True
        else:
            _qualify(unit, decl, self.edits)
            mutable = False

        type_text = decl.full_type_text(unit)
        for name_index in _declared_names(unit, decl):
            self.declared.add(name_index)
            self.scopes.declare(VariableInfo(
                unit[name_index].text, mutable, unit[name_index].line, type_text, for_counter,
            ))
            self.locals += 1

    # =========================================================================
    # Writes
    # =========================================================================

    def _is_dereference(self, star: int) -> bool:
        before = prev_significant(self.unit, star)
        if before < 0:
            return True
        token = self.unit[before]
        if token.is_identifier() or token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.CHAR):
            return False
        return not (token.is_punct(")") or token.is_punct("]"))

    def _check_write(self, i: int) -> None:
        unit = self.unit
        token = unit[i]
        if i in self.declared:
            return
        info = self.scopes.lookup(token.text)
        if info is None or info.mutable:
            return

        prev = prev_significant(unit, i)
        if is_op_at(unit, prev, ".") or is_op_at(unit, prev, "->"):
            return
        if is_op_at(unit, prev, "*") and self._is_dereference(prev):
            return
        following = next_significant(unit, i + 1)
        if following < len(unit):
            after = unit[following]
            if after.is_op(".") or after.is_op("->") or after.is_punct("["):
                return

        prev_step = is_op_at(unit, prev, "++") or is_op_at(unit, prev, "--")
        post_step = is_op_at(unit, following, "++") or is_op_at(unit, following, "--")
        if prev_step or post_step:
            self._modification(i, info)
        elif following < len(unit) and unit[following].type is TokenType.OPERATOR \
                and unit[following].text in ASSIGNMENT_OPERATORS:
            self.ctx.error(
                f"Cannot assign to immutable variable '{info.name}'. Add 'mut' qualifier "
                f"to make it mutable: mut {info.type_text} {info.name}",
                token,
                MutabilityError,
            )

    def _modification(self, i: int, info: VariableInfo) -> None:
        if info.for_counter and any(start < i < end for start, end in self.increments):
            message = (
                f"For-loop counter '{info.name}' must be mutable. "
                f"Use: for (mut {info.type_text} {info.name} ...)"
            )
        else:
            message = (
                f"Cannot modify immutable variable '{info.name}'. Add 'mut' qualifier "
                f"to make it mutable: mut {info.type_text} {info.name}"
            )
        self.ctx.error(message, self.unit[i], MutabilityError)


# =============================================================================
# Hook
# =============================================================================

def _strip_mut(unit: TranslationUnit) -> int:
    """Remove every remaining 'mut'; locals keep theirs until the walk ends."""
    count = 0
    for i, token in enumerate(unit):
        if token.is_identifier(MUT_KEYWORD):
            _drop_mut(unit, i)
            count += 1
    return count


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    _reject_const(ctx)

    type_names = collect_type_names(unit, set(ctx.symbols.structs) | set(ctx.symbols.structs.values()))
    edits: List[Edit] = []

    parameters = _parameters(ctx, type_names, edits)
    walker = _BodyWalker(ctx, type_names, parameters, edits)
    walker.run()

    stripped = _strip_mut(unit)
    _apply(unit, edits)

    logger.debug(
        f"Mutability: {sum(len(p) for p in parameters.values())} parameter(s), "
        f"{walker.locals} local(s), {stripped} 'mut' removed, {len(edits)} const insertion(s)"
    )
