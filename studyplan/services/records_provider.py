"""
Academic Records Provider
-------------------------
Fetches the raw inputs of a plan request from the collaborators.

SOURCES:
- Academic records API: courses, exams, lectures, quizzes
  (GET {base_url}/api/<category>{user_path})
- Task provider: the user's tasks

Nothing here validates records; the request builder does. A failed fetch is
recorded on its CollectionFetch instead of raising, so the builder can tell
"no exams" apart from "exam service down".

USAGE:
client = AcademicRecordsClient()
snapshot = await client.fetch_all()
snapshot.add(await InMemoryTaskProvider(tasks).fetch())
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import httpx

from studyplan.config import settings
from studyplan.models.academic import ACADEMIC_CATEGORIES, RecordCategory
from studyplan.services.request_builder import CollectionFetch, RecordsSnapshot

logger = logging.getLogger(__name__)


def unwrap_collection(category: RecordCategory, data: Any) -> List[Any]:
    """
    Find the record array in an API response.

    ACCEPTS:
    - a bare array
    - an object holding the array under the category name, "data" or "results"

    Any other shape gives an empty list.
    """
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in (category.value, "data", "results"):
            if isinstance(data.get(key), list):
                return data[key]

    logger.warning(
        f"{category.value}: response was not an array or a recognized wrapped array; "
        f"using no records. Response: {str(data)[:200]}"
    )
    return []


class AcademicRecordsClient:
    """
    Client for the external academic records API.

    ARGS:
    - base_url: API root, e.g. "http://localhost:8080"
    - user_path: suffix identifying the user, e.g. "/user/1"
    - timeout: seconds per request
    - transport: optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_path: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.RECORDS_API_BASE_URL).rstrip("/")
        self.user_path = settings.RECORDS_USER_PATH if user_path is None else user_path
        self.timeout = timeout or settings.RECORDS_TIMEOUT
        self.transport = transport

    def url_for(self, category: RecordCategory) -> str:
        return f"{self.base_url}/api/{category.value}{self.user_path}"

    async def _get(self, client: httpx.AsyncClient, category: RecordCategory) -> CollectionFetch:
        url = self.url_for(category)
        logger.debug(f"Fetching {category.value} from {url}")

        try:
            response = await client.get(url)
            response.raise_for_status()
            data = response.json() if response.text.strip() else []
        except httpx.HTTPStatusError as e:
            logger.error(f"Records API error ({e.response.status_code}) for {url}")
            return CollectionFetch(category=category, error=f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Records API request to {url} failed: {e}")
            return CollectionFetch(category=category, error=f"request failed: {e.__class__.__name__}")
        except json.JSONDecodeError as e:
            logger.error(f"Records API returned invalid JSON for {url}: {e}")
            return CollectionFetch(category=category, error="invalid JSON")

        records = unwrap_collection(category, data)
        logger.info(f"Fetched {len(records)} {category.value}")
        return CollectionFetch(category=category, records=records)

    async def fetch_category(self, category: RecordCategory) -> CollectionFetch:
        """Fetch one category; failures are returned, never raised"""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await self._get(client, category)

    async def fetch_all(self, categories: Sequence[RecordCategory] = ACADEMIC_CATEGORIES) -> RecordsSnapshot:
        """Fetch every academic category concurrently"""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            fetches = await asyncio.gather(*(self._get(client, c) for c in categories))

        snapshot = RecordsSnapshot()
        for fetch in fetches:
            snapshot.add(fetch)
        return snapshot


# =============================================================================
# TASKS
# =============================================================================

class TaskProvider(ABC):
    """Source of the user's tasks"""

    @abstractmethod
    async def fetch(self) -> CollectionFetch:
        """Return the tasks as a CollectionFetch for RecordCategory.TASKS"""


class InMemoryTaskProvider(TaskProvider):
    """Tasks held by the application itself"""

    def __init__(self, tasks: Optional[Sequence[Dict[str, Any]]] = None):
        self.tasks = list(tasks or [])

    async def fetch(self) -> CollectionFetch:
        return CollectionFetch(category=RecordCategory.TASKS, records=list(self.tasks))
