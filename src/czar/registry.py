"""
Feature Registry
================

Each CZar feature is described by a Feature record holding up to three
hooks, one per pipeline phase:

    validate(ctx)        inspect the token vector, raise on fatal errors
    transform(ctx)       rewrite the token vector in place
    emit(ctx) -> str     return auxiliary C text for the source file

The registry runs one phase at a time, walking features in
registration order. Registration order is therefore the ordering
contract between passes; dependencies only guard against running a
feature whose prerequisites are missing or circular.

Dependency Resolution
---------------------
Before a hook runs, the feature's dependency closure is resolved
depth-first with a visit mark. A dependency that is not registered, or
a cycle anywhere in the closure, silently skips the feature for that
phase (a debug record is logged).
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from czar.context import TranslationContext

logger = logging.getLogger(__name__)


PassHook = Callable[["TranslationContext"], None]
EmitHook = Callable[["TranslationContext"], str]


# =============================================================================
# Feature Descriptor
# =============================================================================

@dataclass
class Feature:
    """
    Descriptor for one CZar feature.

    Attributes:
        name: Unique feature name, used for dependencies and toggling
        description: One-line summary
        enabled: Disabled features are skipped in every phase
        validate: Optional validation hook
        transform: Optional transformation hook
        emit: Optional emission hook returning C text
        dependencies: Names of features that must precede this one
    """
    name: str
    description: str = ""
    enabled: bool = True
    validate: Optional[PassHook] = None
    transform: Optional[PassHook] = None
    emit: Optional[EmitHook] = None
    dependencies: List[str] = field(default_factory=list)


# =============================================================================
# Registry
# =============================================================================

class FeatureRegistry:
    """
    Ordered collection of features.

    Usage:
        registry = FeatureRegistry()
        registry.register(Feature("enums", validate=check_enums))
        registry.run_validate(ctx)
        registry.run_transform(ctx)
        text = registry.run_emit(ctx)
    """

    def __init__(self):
        self._features: List[Feature] = []

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self):
        return iter(self._features)

    @property
    def names(self) -> List[str]:
        return [feature.name for feature in self._features]

    def register(self, feature: Feature) -> None:
        if self.get(feature.name) is not None:
            raise ValueError(f"feature '{feature.name}' is already registered")
        self._features.append(feature)

    def get(self, name: str) -> Optional[Feature]:
        for feature in self._features:
            if feature.name == name:
                return feature
        return None

    def set_enabled(self, name: str, enabled: bool) -> None:
        """Toggle a feature; unknown names are ignored."""
        feature = self.get(name)
        if feature is not None:
            feature.enabled = enabled

    def enable(self, name: str) -> None:
        self.set_enabled(name, True)

    def disable(self, name: str) -> None:
        self.set_enabled(name, False)

    # =========================================================================
    # Dependency Resolution
    # =========================================================================

    def dependencies_satisfied(self, feature: Feature) -> bool:
        """True if every dependency exists and the closure is acyclic."""
        return self._check(feature, set())

    def _check(self, feature: Feature, visiting: Set[str]) -> bool:
        if not feature.dependencies:
            return True
        if feature.name in visiting:
            return False

        visiting.add(feature.name)
        for dep_name in feature.dependencies:
            dep = self.get(dep_name)
            if dep is None:
                logger.debug(f"Feature '{feature.name}': missing dependency '{dep_name}'")
                return False
            if not self._check(dep, visiting):
                return False
        visiting.discard(feature.name)
        return True

    # =========================================================================
    # Phase Execution
    # =========================================================================

    def _runnable(self, hook_name: str) -> List[Feature]:
        runnable = []
        for feature in self._features:
            if not feature.enabled or getattr(feature, hook_name) is None:
                continue
            if not self.dependencies_satisfied(feature):
                logger.debug(f"Skipping feature '{feature.name}' ({hook_name}): unresolved dependencies")
                continue
            runnable.append(feature)
        return runnable

    def run_validate(self, ctx: "TranslationContext") -> None:
        for feature in self._runnable("validate"):
            logger.debug(f"validate: {feature.name}")
            feature.validate(ctx)

    def run_transform(self, ctx: "TranslationContext") -> None:
        for feature in self._runnable("transform"):
            logger.debug(f"transform: {feature.name}")
            feature.transform(ctx)

    def run_emit(self, ctx: "TranslationContext") -> str:
        """Concatenate the output of every emit hook."""
        parts = []
        for feature in self._runnable("emit"):
            logger.debug(f"emit: {feature.name}")
            text = feature.emit(ctx)
            if text:
                parts.append(text)
        return "".join(parts)
