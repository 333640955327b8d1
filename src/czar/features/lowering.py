"""
Type and Constant Lowering
==========================

The last identifier walk. CZar type short forms and limit constants are
replaced by their <stdint.h>/<stddef.h> spellings, and each lone `_`
becomes a fresh unused variable.

| CZar                 | C                            |
|----------------------|------------------------------|
| u8 .. u64            | uint8_t .. uint64_t          |
| i8 .. i64            | int8_t .. int64_t            |
| f32, f64             | float, double                |
| usize, isize         | size_t, ptrdiff_t            |
| U8_MIN .. U64_MIN    | 0                            |
| U32_MAX, I16_MIN ... | UINT32_MAX, INT16_MIN ...    |
| USIZE_MAX            | SIZE_MAX                     |
| ISIZE_MIN/ISIZE_MAX  | PTRDIFF_MIN/PTRDIFF_MAX      |
| _                    | _cz_unused_N __attribute__((unused)) |

Member names after '.' and '->' are never touched. Running the walk a
second time changes nothing.
"""

from typing import Dict, Iterable, Optional
import logging

from czar.context import TranslationContext
from czar.lexer import Token
from czar.scanner import is_op_at, prev_significant

logger = logging.getLogger(__name__)


TYPE_MAP: Dict[str, str] = {
    "u8": "uint8_t",
    "u16": "uint16_t",
    "u32": "uint32_t",
    "u64": "uint64_t",
    "i8": "int8_t",
    "i16": "int16_t",
    "i32": "int32_t",
    "i64": "int64_t",
    "f32": "float",
    "f64": "double",
    "usize": "size_t",
    "isize": "ptrdiff_t",
    "bool": "bool",
}

CONSTANT_MAP: Dict[str, str] = {
    "U8_MIN": "0",
    "U16_MIN": "0",
    "U32_MIN": "0",
    "U64_MIN": "0",
    "U8_MAX": "UINT8_MAX",
    "U16_MAX": "UINT16_MAX",
    "U32_MAX": "UINT32_MAX",
    "U64_MAX": "UINT64_MAX",
    "I8_MIN": "INT8_MIN",
    "I16_MIN": "INT16_MIN",
    "I32_MIN": "INT32_MIN",
    "I64_MIN": "INT64_MIN",
    "I8_MAX": "INT8_MAX",
    "I16_MAX": "INT16_MAX",
    "I32_MAX": "INT32_MAX",
    "I64_MAX": "INT64_MAX",
    "USIZE_MIN": "0",
    "USIZE_MAX": "SIZE_MAX",
    "ISIZE_MIN": "PTRDIFF_MIN",
    "ISIZE_MAX": "PTRDIFF_MAX",
}

UNUSED_IDENTIFIER = "_"
UNUSED_ATTRIBUTE = "__attribute__((unused))"


def lowered_name(text: str) -> Optional[str]:
    """C spelling of a CZar type or constant, None if text is neither."""
    return TYPE_MAP.get(text) or CONSTANT_MAP.get(text)


def lower_tokens(tokens: Iterable[Token]) -> int:
    """Lower types and constants in a detached token run (no '_' handling)."""
    count = 0
    previous = None
    for token in tokens:
        if token.is_trivia():
            continue
        after_member = previous is not None and (previous.is_op(".") or previous.is_op("->"))
        if token.is_identifier() and not after_member:
            replacement = lowered_name(token.text)
            if replacement is not None and replacement != token.text:
                token.text = replacement
                count += 1
        previous = token
    return count


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    types = constants = unused = 0

    for i, token in enumerate(unit):
        if not token.is_identifier():
            continue
        prev = prev_significant(unit, i)
        if is_op_at(unit, prev, ".") or is_op_at(unit, prev, "->"):
            continue

        if token.text == UNUSED_IDENTIFIER:
            token.text = f"{ctx.next_unused_name()} {UNUSED_ATTRIBUTE}"
            unused += 1
        elif token.text in TYPE_MAP:
            if token.text != TYPE_MAP[token.text]:
                token.text = TYPE_MAP[token.text]
                types += 1
        elif token.text in CONSTANT_MAP:
            token.text = CONSTANT_MAP[token.text]
            constants += 1

    logger.debug(f"Lowered {types} type(s), {constants} constant(s), {unused} unused binding(s)")
