"""

    Search worker

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    SearchWorker owns a loaded dictionary and answers queries about it
    through message passing. Messages are placed in an inbox queue and
    processed strictly one at a time by a single long-lived task.
    The actual corpus scans run on a dedicated single-thread executor,
    so the event loop of the host is never blocked by a search.

    Requests:

        {"type": "loadDictionary"}
        {"type": "searchWords", "searchParams": {...}, "correlationId": ...}

    Responses:

        {"type": "dictionaryLoaded", "words": WordSet,
            "wordCount": int, "loadTime": float}
        {"type": "searchResults", "results": [...], "correlationId": ...,
            "searchTime": float, "resultCount": int}
        {"type": "error", "message": str, ("correlationId": ...)}

    Times are in milliseconds. Responses to messages sent with post()
    are placed on the outbox, from where they can be read with get().
    Alternatively, request() posts a message and waits for its response.

"""

from __future__ import annotations

from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Tuple,
    TypedDict,
    Union,
)

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor

from errors import DictionaryError, DictionaryNotReady, InvalidQuery
from loader import DictionaryLoader, LoadedDictionary
from matcher import DEFAULT_RESULT_LIMIT, MatchEngine, SearchQuery
from wordset import WordSet


class LoadDictionaryRequest(TypedDict):
    type: Literal["loadDictionary"]


class SearchWordsRequest(TypedDict):
    type: Literal["searchWords"]
    searchParams: Dict[str, Any]
    correlationId: Any


class DictionaryLoadedResponse(TypedDict):
    type: Literal["dictionaryLoaded"]
    words: WordSet
    wordCount: int
    loadTime: float


class SearchResultsResponse(TypedDict):
    type: Literal["searchResults"]
    results: List[Dict[str, Any]]
    correlationId: Any
    searchTime: float
    resultCount: int


class _ErrorResponseBase(TypedDict):
    type: Literal["error"]
    message: str


class ErrorResponse(_ErrorResponseBase, total=False):
    correlationId: Any


Request = Union[LoadDictionaryRequest, SearchWordsRequest]
Response = Union[DictionaryLoadedResponse, SearchResultsResponse, ErrorResponse]

LOAD_FAILED_MESSAGE = "Failed to load dictionary"

# An inbox entry: the message and, if the sender is waiting
# for the response, the future that receives it. None stops the worker.
_InboxEntry = Optional[Tuple[Dict[str, Any], Optional["asyncio.Future[Response]"]]]


def _elapsed_ms(t0: float) -> float:
    return round((time.perf_counter() - t0) * 1000.0, 2)


def error_response(message: str, correlation_id: Any = None) -> ErrorResponse:
    resp = ErrorResponse(type="error", message=message)
    if correlation_id is not None:
        resp["correlationId"] = correlation_id
    return resp


def _run_search(engine: MatchEngine, query: SearchQuery) -> List[Dict[str, Any]]:
    """Run a search and convert the results to wire form.
    Called on the worker's executor thread."""
    return [r.to_dict() for r in engine.search(query)]


class SearchWorker:
    """A message-driven owner of a dictionary and its match engine"""

    def __init__(
        self, loader: DictionaryLoader, result_limit: int = DEFAULT_RESULT_LIMIT
    ) -> None:
        self._loader = loader
        self._result_limit = result_limit
        self._inbox: asyncio.Queue[_InboxEntry] = asyncio.Queue()
        self._outbox: asyncio.Queue[Response] = asyncio.Queue()
        self._task: Optional[asyncio.Task[None]] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._loaded: Optional[LoadedDictionary] = None
        self._engine: Optional[MatchEngine] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def loaded(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Optional[MatchEngine]:
        return self._engine

    def start(self) -> SearchWorker:
        """Start the worker task; must be called from within a running event loop"""
        if self.running:
            return self
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="search")
        self._task = asyncio.create_task(self._run(), name="search-worker")
        return self

    async def stop(self) -> None:
        """Process any messages already posted, then stop the worker"""
        if self._task is not None:
            await self._inbox.put(None)
            await self._task
            self._task = None
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        await self._loader.flush()

    async def __aenter__(self) -> SearchWorker:
        return self.start()

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    def post(self, message: Dict[str, Any]) -> None:
        """Send a message to the worker; the response goes to the outbox"""
        if not self.running:
            raise RuntimeError("Search worker is not running")
        self._inbox.put_nowait((message, None))

    async def get(self) -> Response:
        """Wait for the next response in the outbox"""
        return await self._outbox.get()

    async def request(self, message: Dict[str, Any]) -> Response:
        """Send a message to the worker and wait for its response"""
        if not self.running:
            raise RuntimeError("Search worker is not running")
        future: asyncio.Future[Response] = asyncio.get_running_loop().create_future()
        await self._inbox.put((message, future))
        return await future

    async def _run(self) -> None:
        while True:
            entry = await self._inbox.get()
            if entry is None:
                break
            message, future = entry
            try:
                response = await self._handle(message)
            except Exception as e:
                # Keep the worker alive whatever happens to a single message
                logging.exception(f"Search worker failed to handle message: {repr(e)}")
                response = error_response(str(e) or repr(e), self._correlation_id(message))
            if future is not None:
                if not future.cancelled():
                    future.set_result(response)
            else:
                await self._outbox.put(response)

    @staticmethod
    def _correlation_id(message: Any) -> Any:
        if isinstance(message, dict):
            return message.get("correlationId")
        return None

    async def _handle(self, message: Dict[str, Any]) -> Response:
        kind = message.get("type") if isinstance(message, dict) else None
        if kind == "loadDictionary":
            return await self._load()
        if kind == "searchWords":
            return await self._search(message)
        logging.warning(f"Search worker received unknown message type {kind!r}")
        return error_response(f"Unknown message type: {kind}", self._correlation_id(message))

    def _loaded_response(self, loaded: LoadedDictionary, load_time: float) -> DictionaryLoadedResponse:
        return DictionaryLoadedResponse(
            type="dictionaryLoaded",
            words=loaded.words,
            wordCount=len(loaded.words),
            loadTime=load_time,
        )

    async def _load(self) -> Response:
        if self._loaded is not None:
            # Already loaded: nothing to do
            return self._loaded_response(self._loaded, 0.0)
        t0 = time.perf_counter()
        try:
            loaded = await self._loader.load()
        except DictionaryError as e:
            logging.error(f"{LOAD_FAILED_MESSAGE}: {e}")
            return error_response(LOAD_FAILED_MESSAGE)
        self._loaded = loaded
        self._engine = MatchEngine(
            loaded.words, loaded.frequencies, result_limit=self._result_limit
        )
        load_time = _elapsed_ms(t0)
        logging.info(
            f"Search worker loaded {len(loaded.words)} words from {loaded.source} "
            f"in {load_time:.0f} ms"
        )
        return self._loaded_response(loaded, load_time)

    async def _search(self, message: Dict[str, Any]) -> Response:
        correlation_id = message.get("correlationId")
        engine = self._engine
        if engine is None:
            return error_response(str(DictionaryNotReady()), correlation_id)
        try:
            query = SearchQuery.from_params(message.get("searchParams") or {})
        except InvalidQuery as e:
            return error_response(str(e), correlation_id)
        assert self._executor is not None
        t0 = time.perf_counter()
        results = await asyncio.get_running_loop().run_in_executor(
            self._executor, _run_search, engine, query
        )
        return SearchResultsResponse(
            type="searchResults",
            results=results,
            correlationId=correlation_id,
            searchTime=_elapsed_ms(t0),
            resultCount=len(results),
        )
