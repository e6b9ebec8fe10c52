#!/usr/bin/env python3
"""
Response Assembler
Maps resolved records back onto the caller's identifier list
"""

import re
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

from .exceptions import PartialRecordError, ValidationError

logger = logging.getLogger(__name__)

# Upper bound on identifiers per request; extras are dropped silently
MAX_BATCH = 50

R = TypeVar("R")

_ETH_INDEX_RE = re.compile(r"\d+", re.ASCII)
_ETH_PUBKEY_RE = re.compile(r"0x[0-9a-fA-F]{8,96}")
_AVAX_NODE_RE = re.compile(r"NodeID-[1-9A-HJ-NP-Za-km-z]+")


def clamp_identifiers(raw: Any, max_batch: int = MAX_BATCH) -> List[str]:
    """
    Sanitize a caller-supplied identifier list

    Args:
        raw: Value from the request body; must be a list
        max_batch: Number of identifiers kept

    Returns:
        Stripped, non-empty identifiers (at most max_batch), request order kept

    Raises:
        ValidationError: raw is not a list
    """
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("identifiers must be an array")

    identifiers = []
    for item in raw:
        if item is None or isinstance(item, (dict, list, bool)):
            continue
        text = str(item).strip()
        if text:
            identifiers.append(text)

    if len(identifiers) > max_batch:
        logger.debug(f"Truncating identifier batch from {len(identifiers)} to {max_batch}")
        identifiers = identifiers[:max_batch]
    return identifiers


def is_eth_index(identifier: str) -> bool:
    """ASCII digits only; int() rejects other Unicode digits"""
    return bool(_ETH_INDEX_RE.fullmatch(identifier))


def is_eth_identifier(identifier: str) -> bool:
    """Hex public key (0x + 8..96 hex chars) or a non-negative validator index"""
    return is_eth_index(identifier) or bool(_ETH_PUBKEY_RE.fullmatch(identifier))


def is_avax_identifier(identifier: str) -> bool:
    return bool(_AVAX_NODE_RE.fullmatch(identifier))


def check_identifiers(identifiers: List[str], predicate: Callable[[str], bool],
                      kind: str) -> Dict[str, PartialRecordError]:
    """Syntax failures keyed by identifier; they never fail the batch"""
    failures = {}
    for identifier in identifiers:
        if not predicate(identifier):
            failures[identifier] = PartialRecordError(identifier, f"invalid {kind}")
    return failures


def assemble(identifiers: List[str], resolved: Mapping[str, R],
             failures: Optional[Mapping[str, Exception]] = None,
             placeholder: Callable[[str, str], R] = None) -> List[R]:
    """
    Exactly one record per requested identifier, in request order.

    Identifiers missing from `resolved` become placeholder records carrying the
    failure message (or a generic "not found" when nothing failed explicitly).
    """
    failures = failures or {}
    records = []
    for identifier in identifiers:
        record = resolved.get(identifier)
        if record is not None:
            records.append(record)
            continue

        error = failures.get(identifier)
        if isinstance(error, PartialRecordError):
            message = error.reason
        elif error is not None:
            message = str(error)
        else:
            message = "no matching upstream record"
        logger.debug(f"Placeholder record for {identifier}: {message}")
        records.append(placeholder(identifier, message))
    return records
