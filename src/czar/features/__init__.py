"""
CZar Feature Passes
===================

One module per language feature. Each module exposes plain functions
taking the TranslationContext; this package binds them to Feature
records and registers them in pipeline order.

Pipeline Order
--------------
Validation runs for every feature before any transform, so all fatal
checks see the source as written. Transforms then run in the order
below; each one relies on the rewrites before it:

    deprecated -> function signatures -> structs -> methods -> struct names
    -> auto-dereference -> enums -> switches -> UNREACHABLE/TODO/FIXME
    -> foreach -> named arguments -> mutability -> defer
    -> type/constant lowering -> cast lowering

Emit hooks (defer cleanup functions, log level flag) contribute text
placed before the first function definition in the source file.

Usage
-----
>>> from czar.features import default_registry
>>> registry = default_registry()
>>> registry.disable("defer")
"""

from czar.features import (
    arguments,
    autoderef,
    casts,
    defer,
    deprecated,
    enums,
    foreach,
    functions,
    log,
    lowering,
    methods,
    mutability,
    struct_names,
    structs,
    switches,
    unreachable,
    validation,
)
from czar.registry import Feature, FeatureRegistry


def register_default_features(registry: FeatureRegistry) -> FeatureRegistry:
    """Register every built-in feature in pipeline order."""
    features = [
        # Validation
        Feature("validation", "Variables must be explicitly initialized",
                validate=validation.validate),
        Feature("casts", "Reject C-style casts, check cast<T>(...) syntax",
                validate=casts.validate),
        Feature("enums", "Enum member naming and switch exhaustiveness",
                validate=enums.validate),
        Feature("functions", "Warn on empty parameter lists",
                validate=functions.validate),

        # Transforms
        Feature("deprecated", "#deprecated -> __attribute__((deprecated))",
                transform=deprecated.transform),
        Feature("function_signatures", "main return type, (void), result attributes",
                transform=functions.transform, dependencies=["functions"]),
        Feature("structs", "struct Name { } -> typedef struct Name_s { } Name_t",
                transform=structs.transform),
        Feature("methods", "Struct methods and method calls",
                transform=methods.transform, dependencies=["structs"]),
        Feature("struct_names", "Name -> Name_t in type positions",
                transform=struct_names.transform, dependencies=["methods"]),
        Feature("autodereference", "'.' on pointer parameters -> '->'",
                transform=autoderef.transform, dependencies=["struct_names"]),
        Feature("enum_rewrite", "Enum typedefs and prefixed members",
                transform=enums.transform, dependencies=["enums"]),
        Feature("switches", "Fallthrough and default insertion",
                transform=switches.transform, dependencies=["enum_rewrite"]),
        Feature("unreachable", "UNREACHABLE(msg) -> abort block",
                transform=unreachable.transform_unreachable),
        Feature("todo", "TODO(msg) -> abort block",
                transform=unreachable.transform_todo),
        Feature("fixme", "FIXME(msg) -> abort block",
                transform=unreachable.transform_fixme),
        Feature("foreach", "Range and array for loops",
                transform=foreach.transform),
        Feature("arguments", "Named argument labels",
                transform=arguments.transform),
        Feature("mutability", "Immutable by default, 'mut' opt-in",
                transform=mutability.transform, dependencies=["arguments"]),
        Feature("defer", "#defer cleanup blocks",
                transform=defer.transform, emit=defer.emit, dependencies=["mutability"]),
        Feature("types_constants", "CZar types and limits -> stdint names",
                transform=lowering.transform),
        Feature("cast_lowering", "cast<T>(...) -> C expressions",
                transform=casts.lower, dependencies=["casts", "types_constants"]),

        # Emit only
        Feature("log", "Runtime log level flag",
                emit=log.emit),
    ]
    for feature in features:
        registry.register(feature)
    return registry


def default_registry() -> FeatureRegistry:
    """A fresh registry holding every built-in feature."""
    return register_default_features(FeatureRegistry())


__all__ = ["register_default_features", "default_registry"]
