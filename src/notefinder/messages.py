"""User-facing notification strings."""

from __future__ import annotations

NO_EMBEDDING_PROVIDER = "No embedding provider available"
ALREADY_PROCESSING_VAULT = "Already processing vault"
CACHE_CLEARED = "Cache cleared"
NO_SIMILAR_NOTES = "No similar notes found"


def processing_files(total: int, skipped: int) -> str:
    return f"Processing {total} notes ({skipped} skipped)..."


def processing_complete(processed: int, cached: int) -> str:
    return f"Processed {processed} files ({cached} cached)"


def progress(done: int, total: int, new: int, cached: int, eta: str) -> str:
    return f"Progress: {done}/{total} - {new} new, {cached} cached - ETA: {eta}"


def vault_processed(
    seconds: float, new: int, cached: int, skipped: int, failed: int, chunks: int
) -> str:
    return (
        f"Vault processed in {seconds:.1f}s: {new} new, {cached} cached, "
        f"{skipped} skipped, {failed} failed ({chunks} total chunks)"
    )


def model_switched(model: str) -> str:
    return f"Switched to {model} model"


def provider_switch_failed(provider: str) -> str:
    return f"Failed to switch to {provider} provider"
