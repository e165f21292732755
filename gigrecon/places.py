"""Google Places text search, used as the venue fallback."""

import logging
from typing import Optional

import httpx

from gigrecon import Candidate
from gigrecon.ports import LookupFailure

log = logging.getLogger(__name__)

TEXT_SEARCH_URL = 'https://maps.googleapis.com/maps/api/place/textsearch/json'
DEFAULT_TIMEOUT = 10.0


class GooglePlacesLookup:
    """Implements the ``PlaceLookup`` port against the Places Text Search API.

    Results are restricted to establishments. ``ZERO_RESULTS`` is an empty
    answer; any other non-OK status, HTTP error or transport error raises
    ``LookupFailure``.
    """

    def __init__(
        self,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not api_key:
            raise ValueError('A Places API key is required')
        self.api_key = api_key
        self._client = client
        self._timeout = timeout

    async def search(self, term: str, limit: int = 5) -> list[Candidate]:
        params = {'query': term, 'type': 'establishment', 'key': self.api_key}
        try:
            if self._client is not None:
                response = await self._client.get(TEXT_SEARCH_URL, params=params)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(TEXT_SEARCH_URL, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise LookupFailure(f"Place lookup for {term!r} failed: {exc}") from exc
        except ValueError as exc:
            raise LookupFailure(f"Place lookup for {term!r} returned invalid JSON") from exc

        status = payload.get('status', 'UNKNOWN_ERROR')
        if status == 'ZERO_RESULTS':
            return []
        if status != 'OK':
            message = payload.get('error_message', '')
            raise LookupFailure(f"Place lookup for {term!r} failed: {status} {message}".rstrip())

        places = [_place(result) for result in payload.get('results', [])[:limit]]
        log.debug("Place lookup for %r: %d result(s)", term, len(places))
        return places


def _place(result: dict) -> Candidate:
    location = result.get('geometry', {}).get('location')
    place_id = result.get('place_id', '')
    return Candidate(
        name=result.get('name', ''),
        address=result.get('formatted_address', ''),
        location=(location['lat'], location['lng']) if location else None,
        place_id=place_id,
        identifiers={'place_id': place_id} if place_id else {},
    )
