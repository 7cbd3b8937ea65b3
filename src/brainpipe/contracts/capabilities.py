# src/brainpipe/contracts/capabilities.py
"""Model capabilities and the model-reference boundary.

Operations that call a model declare the capability they need; the model
bound to them must advertise it. The engine never talks to a model, it only
checks the capability set.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable


class Capability(StrEnum):
    TEXT_TO_TEXT = "text_to_text"
    TEXT_TO_IMAGE = "text_to_image"
    IMAGE_TO_TEXT = "image_to_text"
    TEXT_IMAGE_TO_TEXT = "text_image_to_text"
    TEXT_TO_AUDIO = "text_to_audio"
    AUDIO_TO_TEXT = "audio_to_text"
    TEXT_TO_EMBEDDING = "text_to_embedding"
    IMAGE_EDIT = "image_edit"


VALID_CAPABILITIES: frozenset[str] = frozenset(c.value for c in Capability)


def is_valid_capability(capability: str) -> bool:
    return str(capability) in VALID_CAPABILITIES


@runtime_checkable
class ModelReference(Protocol):
    """Opaque handle to a model, as seen by the core."""

    @property
    def name(self) -> str: ...

    @property
    def capabilities(self) -> frozenset[str]: ...
