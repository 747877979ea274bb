"""Model descriptors discovered through a provider's model listing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ModelPricing:
    """Cost per million tokens, when the provider publishes it."""

    input_per_million: float | None = None
    output_per_million: float | None = None


@dataclass(frozen=True)
class ModelDescriptor:
    """One model a key can access."""

    id: str
    name: str | None = None
    description: str | None = None
    context_length: int | None = None
    modes: tuple[str, ...] = ("chat",)
    pricing: ModelPricing = field(default_factory=ModelPricing)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def to_dict(self) -> dict[str, Any]:
        pricing: dict[str, Any] = {}
        if self.pricing.input_per_million is not None:
            pricing["input_per_million"] = self.pricing.input_per_million
        if self.pricing.output_per_million is not None:
            pricing["output_per_million"] = self.pricing.output_per_million

        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "context_length": self.context_length,
            "modes": list(self.modes),
            "pricing": pricing,
        }

    @classmethod
    def from_dict(cls, d: Any) -> "ModelDescriptor | None":
        """Rebuild from ``to_dict`` output, or return None for unusable entries."""
        if isinstance(d, str) and d:
            return cls(id=d)
        if not isinstance(d, dict):
            return None

        model_id = d.get("id")
        if not isinstance(model_id, str) or not model_id:
            return None

        name = d.get("name") if isinstance(d.get("name"), str) else None
        description = d.get("description") if isinstance(d.get("description"), str) else None

        context_length = d.get("context_length")
        if not isinstance(context_length, int):
            context_length = None

        modes_raw = d.get("modes")
        modes: tuple[str, ...] = ("chat",)
        if isinstance(modes_raw, list):
            modes = tuple(x for x in modes_raw if isinstance(x, str)) or ("chat",)

        pricing_raw = d.get("pricing")
        pricing = ModelPricing()
        if isinstance(pricing_raw, dict):
            ipm = pricing_raw.get("input_per_million")
            opm = pricing_raw.get("output_per_million")
            pricing = ModelPricing(
                input_per_million=float(ipm) if isinstance(ipm, (int, float)) else None,
                output_per_million=float(opm) if isinstance(opm, (int, float)) else None,
            )

        return cls(
            id=model_id,
            name=name,
            description=description,
            context_length=context_length,
            modes=modes,
            pricing=pricing,
        )


_MODE_ALIASES = {
    "chat": "chat",
    "completion": "chat",
    "generatecontent": "chat",
    "stream": "stream",
    "streaming": "stream",
    "streamgeneratecontent": "stream",
    "reason": "reason",
    "reasoning": "reason",
    "code": "code",
    "coder": "code",
    "image": "image",
    "images": "image",
    "vision": "image",
    "audio": "audio",
    "video": "video",
    "search": "search",
}


def parse_model_modes(capabilities: list[str] | None) -> tuple[str, ...]:
    """Map provider capability strings to normalized modes. Defaults to chat."""
    if not capabilities:
        return ("chat",)

    modes: list[str] = []
    for cap in capabilities:
        if not isinstance(cap, str):
            continue
        mode = _MODE_ALIASES.get(cap.lower())
        if mode and mode not in modes:
            modes.append(mode)

    return tuple(modes) if modes else ("chat",)
