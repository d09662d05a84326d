from __future__ import annotations
import logging
import httpx
from typing import Any, List, Optional
from .settings import settings


logger = logging.getLogger(__name__)


class TagsClient:
	"""Fetches tag suggestions from the remote question-bank API."""

	def __init__(self, base_url: Optional[str] = None, *, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
		self.base_url = base_url if base_url is not None else settings.tags_api_url
		self._client = httpx.AsyncClient(timeout=timeout or settings.tags_api_timeout, transport=transport)

	@property
	def configured(self) -> bool:
		return bool(self.base_url)

	async def fetch(self) -> List[str]:
		"""Return remote tag names; items may be plain strings or objects with a ``name``."""
		if not self.configured:
			return []
		resp = await self._client.get(self.base_url)
		resp.raise_for_status()
		data: Any = resp.json()
		if isinstance(data, dict):
			data = data.get("tags") or data.get("data") or []
		names: List[str] = []
		for item in data or []:
			name = item.get("name") if isinstance(item, dict) else item
			if isinstance(name, str) and name.strip():
				names.append(name.strip())
		return names

	async def suggestions(self, local_tags: List[str]) -> List[str]:
		remote: List[str] = []
		try:
			remote = await self.fetch()
		except (httpx.HTTPError, ValueError) as e:
			logger.warning("Tag suggestions unavailable from %s: %s", self.base_url, e)
		merged = {t for t in remote + list(local_tags) if t}
		return sorted(merged)

	async def aclose(self) -> None:
		await self._client.aclose()
