from __future__ import annotations

from .transport import InferenceClient
from .types import CatalogEntry

TEXT_MODALITY = "TEXT"
SYSTEM_DEFINED_PROFILES = "SYSTEM_DEFINED"
MAX_INFERENCE_PROFILES = 1000


def build_catalog(client: InferenceClient) -> list[CatalogEntry]:
    """List chat-capable model identifiers.

    Foundation models must be ``ACTIVE`` and support response streaming;
    every system-defined inference profile is listed. The two listings are
    concatenated without de-duplication, and a failure of either call fails
    the whole listing.
    """

    foundation_models = client.list_foundation_models(TEXT_MODALITY)
    profiles = client.list_inference_profiles(SYSTEM_DEFINED_PROFILES, MAX_INFERENCE_PROFILES)

    entries = [
        CatalogEntry.from_model_id(model.id)
        for model in foundation_models
        if model.lifecycle_status == "ACTIVE" and model.streaming_supported is True
    ]
    entries.extend(CatalogEntry.from_model_id(profile.id) for profile in profiles if profile.id)
    return entries
