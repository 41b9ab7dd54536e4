import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from string import Formatter
from typing import Any, Optional
from urllib.parse import quote

from pydantic import BaseModel, TypeAdapter, ValidationError

from equiptrak.client.cache import CacheKey, QueryCache
from equiptrak.client.http import ApiClient, ApiError, MissingParameterError, ResponseFormatError, clean_params
from equiptrak.client.types import Conversation, ConversationParticipant, Equipment, Message, ServiceRecord

logger = logging.getLogger("equiptrak.client")


@dataclass(frozen=True)
class ResourceQuery:
    """Declarative GET of one resource collection.

    ``required`` and ``optional`` list the parameter names in cache-key
    order. Names that appear as ``{placeholders}`` in ``path`` are sent in
    the path; every other name becomes a query-string parameter.
    """

    resource: str
    path: str
    model: type[BaseModel]
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()

    @property
    def param_names(self) -> tuple[str, ...]:
        return self.required + self.optional

    @property
    def path_params(self) -> tuple[str, ...]:
        return tuple(name for _, name, _, _ in Formatter().parse(self.path) if name)

    def _check_names(self, params: dict[str, Any]) -> None:
        unknown = set(params) - set(self.param_names)
        if unknown:
            raise TypeError(f"Unknown parameters for {self.resource}: {', '.join(sorted(unknown))}")

    def cache_key(self, params: dict[str, Any]) -> CacheKey:
        self._check_names(params)
        values = (params.get(name) for name in self.param_names)
        # "" and None send the same request, so they share an entry
        return (self.resource, *(None if value == "" else value for value in values))

    def build_request(self, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        self._check_names(params)
        missing = [name for name in self.required if params.get(name) in (None, "")]
        if missing:
            raise MissingParameterError(f"Missing required parameter: {', '.join(missing)}")
        path_params = self.path_params
        path = self.path.format(**{name: quote(str(params[name]), safe="") for name in path_params})
        query = clean_params(
            {name: params.get(name) for name in self.param_names if name not in path_params}
        )
        return path, query

    async def fetch(self, client: ApiClient, params: dict[str, Any]) -> list:
        path, query = self.build_request(params)
        payload = await client.get(path, params=query)
        try:
            return TypeAdapter(list[self.model]).validate_python(payload)
        except ValidationError as exc:
            raise ResponseFormatError(f"Unexpected {self.resource} payload: {exc.error_count()} errors") from exc


EQUIPMENT = ResourceQuery(
    resource="equipment",
    path="/api/companies/{company_id}/equipment",
    model=Equipment,
    required=("company_id",),
    optional=("type",),
)

SERVICE_RECORDS = ResourceQuery(
    resource="service_records",
    path="/api/service-records",
    model=ServiceRecord,
    required=("company_id",),
    optional=("status",),
)

CONVERSATIONS = ResourceQuery(
    resource="conversations",
    path="/api/conversations",
    model=Conversation,
    required=("company_id",),
    optional=("status",),
)

CONVERSATION_PARTICIPANTS = ResourceQuery(
    resource="conversation_participants",
    path="/api/conversations/{conversation_id}/participants",
    model=ConversationParticipant,
    required=("company_id", "conversation_id"),
)

MESSAGES = ResourceQuery(
    resource="messages",
    path="/api/conversations/{conversation_id}/messages",
    model=Message,
    required=("company_id", "conversation_id"),
)


@dataclass(frozen=True)
class QueryResult:
    data: Optional[list] = None
    error: Optional[Exception] = None
    status: str = "loading"
    is_loading: bool = True
    is_fetching: bool = False
    updated_at: Optional[float] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class QueryObserver:
    """One mounted use of a :class:`ResourceQuery`.

    The observer refetches only when its parameters change or its cache
    entry is missing or stale, and always reports the entry of its current
    key.
    """

    def __init__(self, query: ResourceQuery, client: ApiClient, cache: QueryCache) -> None:
        self.query = query
        self._client = client
        self._cache = cache
        self._params: Optional[dict[str, Any]] = None
        self._key: Optional[CacheKey] = None
        self._tasks: dict[CacheKey, asyncio.Task] = {}

    @property
    def params(self) -> Optional[dict[str, Any]]:
        return dict(self._params) if self._params is not None else None

    @property
    def key(self) -> Optional[CacheKey]:
        return self._key

    @property
    def result(self) -> QueryResult:
        entry = self._cache.read(self._key) if self._key is not None else None
        if entry is None:
            return QueryResult(is_loading=self._key is not None)
        return QueryResult(
            data=entry.data,
            error=entry.error,
            status=entry.status,
            is_loading=entry.status == "loading",
            is_fetching=entry.is_fetching,
            updated_at=entry.updated_at,
        )

    def _needs_fetch(self, key: CacheKey) -> bool:
        entry = self._cache.read(key)
        return entry is None or entry.is_stale

    def set_params(self, **params: Any) -> Optional[asyncio.Task]:
        key = self.query.cache_key(params)
        if key == self._key and not self._needs_fetch(key):
            return None
        self._params = params
        self._key = key
        in_flight = self._tasks.get(key)
        if in_flight is not None and not self._needs_fetch(key):
            return in_flight
        return self._schedule(key, params)

    def _schedule(self, key: CacheKey, params: dict[str, Any]) -> asyncio.Task:
        seq = self._cache.begin(key)
        task = asyncio.get_running_loop().create_task(self._run(key, seq, params))
        self._tasks[key] = task
        task.add_done_callback(lambda done, key=key: self._forget(key, done))
        return task

    def _forget(self, key: CacheKey, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    async def _run(self, key: CacheKey, seq: int, params: dict[str, Any]) -> None:
        try:
            data = await self.query.fetch(self._client, params)
        except ApiError as exc:
            if not self._cache.reject(key, seq, exc):
                logger.debug("dropped superseded error for %s", key)
            return
        if not self._cache.resolve(key, seq, data):
            logger.debug("dropped superseded result for %s", key)

    async def wait(self) -> QueryResult:
        task = self._tasks.get(self._key) if self._key is not None else None
        if task is not None:
            await asyncio.shield(task)
        return self.result

    async def update(self, **params: Any) -> QueryResult:
        self.set_params(**params)
        return await self.wait()

    async def refetch(self) -> QueryResult:
        if self._params is None:
            raise RuntimeError("refetch() called before set_params()")
        self._schedule(self._key, self._params)
        return await self.wait()


async def create_service_record(
    client: ApiClient,
    cache: QueryCache,
    company_id: str,
    service_date: date,
    engineer_name: str,
    **fields: Any,
) -> ServiceRecord:
    if not company_id:
        raise MissingParameterError("Missing required parameter: company_id")
    body = {
        "company_id": company_id,
        "service_date": service_date.isoformat(),
        "engineer_name": engineer_name,
        **fields,
    }
    payload = await client.post("/api/service-records", json=body)
    cache.invalidate((SERVICE_RECORDS.resource, company_id))
    return ServiceRecord.model_validate(payload)


async def send_message(
    client: ApiClient,
    cache: QueryCache,
    company_id: str,
    conversation_id: str,
    content: str,
) -> Message:
    if not company_id or not conversation_id:
        raise MissingParameterError("Missing required parameter: company_id, conversation_id")
    payload = await client.post(
        f"/api/conversations/{quote(conversation_id, safe='')}/messages",
        json={"content": content},
        params={"company_id": company_id},
    )
    cache.invalidate((MESSAGES.resource, company_id, conversation_id))
    cache.invalidate((CONVERSATIONS.resource, company_id))
    return Message.model_validate(payload)
