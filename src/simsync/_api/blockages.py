"""Blockage bulk-creation endpoint.

Endpoint:
  - POST /blockages/bulk
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from simsync._http import JsonTransport
from simsync.models.blockage import BlockageRecord

_logger = logging.getLogger(__name__)

BULK_ENDPOINT = "blockages/bulk"


def build_bulk_payload(records: Iterable[BlockageRecord]) -> list[dict[str, Any]]:
    """Serialize *records* as the camelCase list the endpoint expects."""
    return [record.to_payload() for record in records]


async def submit_blockages(http: JsonTransport, records: Iterable[BlockageRecord]) -> Any:
    """POST *records* in one request and return the decoded response.

    An empty batch is not sent. HTTP failures surface as
    :class:`~simsync.exceptions.HttpTransportError`.
    """
    payload = build_bulk_payload(records)
    if not payload:
        _logger.debug("No blockages to submit")
        return None
    _logger.info("Submitting %d blockage(s)", len(payload))
    return await http.post_json(BULK_ENDPOINT, payload)
