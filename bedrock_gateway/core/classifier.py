from __future__ import annotations

from typing import Callable

from .types import ModelFamily

Predicate = Callable[[str], bool]

_LEGACY_CLAUDE_MARKERS = ("anthropic.claude-v2", "anthropic.claude-instant")


def _is_legacy_claude(model_id: str) -> bool:
    return any(marker in model_id for marker in _LEGACY_CLAUDE_MARKERS)


def _is_messages_claude(model_id: str) -> bool:
    # Cross-region inference profiles look like "us.anthropic.claude-...".
    return (
        "anthropic.claude" in model_id or ".anthropic." in model_id
    ) and not _is_legacy_claude(model_id)


def _is_llama(model_id: str) -> bool:
    return model_id.startswith("meta.llama") or ".meta.llama" in model_id


def _is_cohere_embed(model_id: str) -> bool:
    return model_id.startswith("cohere.embed")


class FamilyClassifier:
    """Ordered ``(predicate, family)`` rules; the first matching rule wins."""

    def __init__(self, rules: list[tuple[Predicate, ModelFamily]] | None = None) -> None:
        self._rules: list[tuple[Predicate, ModelFamily]] = list(rules or ())

    def register(
        self,
        predicate: Predicate,
        family: ModelFamily,
        *,
        first: bool = False,
    ) -> None:
        if first:
            self._rules.insert(0, (predicate, family))
        else:
            self._rules.append((predicate, family))

    def classify(self, model_id: str) -> ModelFamily:
        model_id = (model_id or "").strip().lower()
        for predicate, family in self._rules:
            if predicate(model_id):
                return family
        return ModelFamily.UNKNOWN


def default_classifier() -> FamilyClassifier:
    return FamilyClassifier(
        [
            (_is_legacy_claude, ModelFamily.LEGACY_COMPLETION),
            (_is_messages_claude, ModelFamily.MESSAGES),
            (_is_llama, ModelFamily.GENERATION),
            (_is_cohere_embed, ModelFamily.EMBEDDING),
        ]
    )


_DEFAULT = default_classifier()


def classify(model_id: str) -> ModelFamily:
    return _DEFAULT.classify(model_id)
