# gstr1_prep/domain/services/gstin_lookup.py
"""
GSTIN details lookup service.

Calls a MasterGST-style public search API to fetch the legal/trade name,
state and registration status for a GSTIN. Best-effort only: every
failure is logged and returns None so manual entry is never blocked.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from gstr1_prep.config.settings import settings
from gstr1_prep.domain.models.filing import GstDetails
from gstr1_prep.domain.services.gstin_pan_validation import state_from_gstin, state_name

logger = logging.getLogger("gstin_lookup")

SEARCH_PATH = "/commonapi/v1.1/search"


async def lookup_gstin_details(gstin: str) -> Optional[GstDetails]:
    """Fetch public registration details for *gstin*, or None."""
    gstin = (gstin or "").strip().upper()
    if not gstin:
        return None

    api_url = settings.GSTIN_LOOKUP_URL
    api_key = settings.GSTIN_LOOKUP_API_KEY
    if not api_url:
        logger.info("gstin_lookup: no GSTIN_LOOKUP_URL configured, skipping API call")
        return None

    headers = {}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    try:
        async with httpx.AsyncClient(timeout=settings.GSTIN_LOOKUP_TIMEOUT) as client:
            resp = await client.get(
                f"{api_url.rstrip('/')}{SEARCH_PATH}",
                params={"gstin": gstin, "aspid": api_key},
                headers=headers,
            )
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError):
        logger.exception("gstin_lookup: API call failed for %s", gstin)
        return None

    if not isinstance(data, dict) or data.get("error") or not data.get("data"):
        message = data.get("message") if isinstance(data, dict) else None
        logger.warning("gstin_lookup: API returned error for %s: %s", gstin, message)
        return None

    return _parse_search_response(gstin, data["data"])


def _parse_search_response(gstin: str, gst_data: Dict[str, Any]) -> GstDetails:
    address = (gst_data.get("pradr") or {}).get("addr") or {}
    state_code = state_from_gstin(gstin)
    legal_name = gst_data.get("lgnm") or ""
    return GstDetails(
        gstin=gstin,
        legal_name=legal_name or gst_data.get("tradeNam") or "",
        trade_name=gst_data.get("tradeNam") or legal_name,
        state_code=state_code,
        state_name=address.get("stcd") or state_name(state_code),
        status=gst_data.get("sts") or "Unknown",
    )
