"""
Runtime log level switch.

A unit that calls the runtime logger (Log.info(...) -> cz_log_info(...))
gets a file-local flag telling the runtime whether debug records are
printed; `#pragma czar debug false` turns it off.
"""

from czar.context import TranslationContext

LOG_FUNCTION_PREFIX = "cz_log_"


def uses_log(ctx: TranslationContext) -> bool:
    return any(
        token.is_identifier() and token.text.startswith(LOG_FUNCTION_PREFIX)
        for token in ctx.unit
    )


def emit(ctx: TranslationContext) -> str:
    if not uses_log(ctx):
        return ""
    return f"static int cz_log_debug_mode = {int(ctx.pragmas.debug_mode)};\n"
