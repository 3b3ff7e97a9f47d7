"""
Seal Key Rotation — Re-seal stored envelopes under a new key pair.

Envelopes written by one engine can only be opened by an engine holding the
same private key. When the key pair changes, callers that keep envelopes
around pass them through ``reseal_envelopes`` with the old engine as source
and the new engine as target.

Each envelope is handled independently: a failure is logged and counted and
the batch carries on. Re-sealing also restarts the replay window, since the
new envelope gets a fresh timestamp.

Security Note:
    Plaintext exists in memory only during re-sealing of each item.
    Never log plaintext or ciphertext values.
"""
import logging
from collections.abc import Iterable
from typing import Optional

from ..exceptions import SealError
from .engine import SealEngine

logger = logging.getLogger("hybrid_seal")


def reseal_envelopes(
    items: Iterable[tuple[str, int]],
    source: SealEngine,
    target: SealEngine,
) -> dict:
    """Unseal each envelope with ``source`` and seal it again with ``target``.

    Args:
        items: ``(transport, principal_id)`` pairs.
        source: Engine holding the key pair the envelopes were sealed with.
        target: Engine holding the new key pair.

    Returns:
        Stats dict with keys: total, resealed, errors, results. ``results``
        lists the new transport string per item, or None where it failed.
    """
    stats = {"total": 0, "resealed": 0, "errors": 0}
    results: list[Optional[str]] = []

    logger.info(
        "Starting reseal from key %s to key %s",
        source.key_manager.fingerprint, target.key_manager.fingerprint,
    )

    for transport, principal_id in items:
        stats["total"] += 1
        try:
            payload = source.unseal(transport, principal_id)
            results.append(target.seal(payload, principal_id))
            stats["resealed"] += 1
        except (SealError, TypeError) as err:
            logger.error(
                "Error resealing item %d for principal=%s: %s",
                stats["total"], principal_id, type(err).__name__,
            )
            results.append(None)
            stats["errors"] += 1

    logger.info("Reseal complete: %s", stats)
    stats["results"] = results
    return stats
