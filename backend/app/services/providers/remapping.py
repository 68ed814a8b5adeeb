"""
Port-name remapping table.

Graph ports use short media names (``image``, ``mask``); provider APIs want
their own field names. Each rule applies when the provider matches and the
optional predicate accepts the definition's ``provider_model``. Rules are
checked in order and the first match for a given source field wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

ModelPredicate = Callable[[str], bool]


@dataclass(frozen=True)
class RemapRule:
    provider: str
    source: str
    target: str
    applies_to: ModelPredicate | None = None

    def matches(self, provider: str, model: str) -> bool:
        if provider != self.provider:
            return False
        return self.applies_to is None or self.applies_to(model)


def _kling_v3_image_to_video(model: str) -> bool:
    return "kling-video/v3" in model and "image-to-video" in model


REMAP_RULES: tuple[RemapRule, ...] = (
    RemapRule("fal", "image", "start_image_url", applies_to=_kling_v3_image_to_video),
    RemapRule("fal", "image", "image_url"),
    RemapRule("fal", "mask", "mask_url"),
)


def remap_fields(
    provider: str,
    model: str,
    inputs: dict[str, Any],
    rules: tuple[RemapRule, ...] = REMAP_RULES,
) -> dict[str, Any]:
    """
    Rename fields for ``provider``/``model``.

    A field already present under the target name is left alone, and the
    source field is then kept as-is too.
    """
    out = dict(inputs)
    handled: set[str] = set()
    for rule in rules:
        if rule.source in handled or rule.source not in out:
            continue
        if not rule.matches(provider, model):
            continue
        handled.add(rule.source)
        if rule.target in out:
            continue
        out[rule.target] = out.pop(rule.source)
    return out
