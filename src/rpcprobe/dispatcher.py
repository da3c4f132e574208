import asyncio
import itertools
import json
import logging
from time import perf_counter

import httpx

from rpcprobe.constants import HTTP_ERROR, NULL_RESULT, UNKNOWN_ERROR
from rpcprobe.models import Outcome, Request

log = logging.getLogger("rpcprobe.dispatcher")


class RequestDispatcher:
    """Issues single JSON-RPC calls and turns whatever happens into an Outcome.

    `dispatch()` never raises (task cancellation aside). Classification order:
    transport failure (including any non-2xx response), JSON-RPC error envelope
    in a 2xx response, null result (skip), success.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def new_request(self, method: str, params: list | None = None) -> Request:
        return Request(method=method, params=list(params or []), id=next(self._ids))

    def assign_id(self, req: Request) -> Request:
        """Give `req` an id from this dispatcher's counter unless it already has one."""
        if req.id is None:
            req.id = next(self._ids)
        return req

    async def dispatch(self, method: str, params: list | None = None) -> Outcome:
        return await self.send(self.new_request(method, params))

    async def send(self, req: Request) -> Outcome:
        """Post `req` with its own id. Same classification as `dispatch`."""
        self.assign_id(req)
        method = req.method
        log.debug("-> %s id=%s params=%s", req.method, req.id, req.params)
        start = perf_counter()
        try:
            response = await self.client.post(self.url, json=req.to_payload())
            body = _decode(response)
        except asyncio.CancelledError:
            raise
        except httpx.HTTPError as e:
            elapsed = (perf_counter() - start) * 1000
            log.debug("<- %s transport error: %s: %s", method, type(e).__name__, e)
            return Outcome.transport(method, str(e) or type(e).__name__, HTTP_ERROR,
                                     details=type(e).__name__, duration_ms=elapsed)
        except Exception as e:
            elapsed = (perf_counter() - start) * 1000
            log.warning("<- %s unexpected error: %s: %s", method, type(e).__name__, e)
            return Outcome.transport(method, str(e) or type(e).__name__, UNKNOWN_ERROR,
                                     details=type(e).__name__, duration_ms=elapsed)
        elapsed = (perf_counter() - start) * 1000

        outcome = self.classify(method, response, body, elapsed)
        log.debug("<- %s %s (%.0fms)", method, outcome.status, elapsed)
        return outcome

    @staticmethod
    def classify(method: str, response: httpx.Response, body, elapsed: float) -> Outcome:
        error = body.get("error") if isinstance(body, dict) else None

        if response.is_error:
            # Failed HTTP exchange; an error body only supplies the code and message
            if error is not None:
                error = _error_object(error)
                code = error.get("code")
                return Outcome.transport(
                    method,
                    str(error.get("message") or f"HTTP {response.status_code}"),
                    response.status_code if code is None else code,
                    details=error,
                    duration_ms=elapsed,
                )
            return Outcome.transport(
                method,
                f"HTTP {response.status_code} {response.reason_phrase}".strip(),
                response.status_code,
                details=body if body is not None else response.text[:500],
                duration_ms=elapsed,
            )

        if not isinstance(body, dict):
            return Outcome.transport(method, "Malformed JSON-RPC response", HTTP_ERROR,
                                     details=response.text[:500], duration_ms=elapsed)

        if error is not None:
            return Outcome.protocol(method, _error_object(error), duration_ms=elapsed)

        if "result" not in body:
            return Outcome.transport(method, "JSON-RPC response has neither result nor error", HTTP_ERROR,
                                     details=body, duration_ms=elapsed)

        result = body["result"]
        if result is None:
            return Outcome.skipped(method, NULL_RESULT, duration_ms=elapsed)
        return Outcome.ok(method, result, elapsed)


def _decode(response: httpx.Response):
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _error_object(error) -> dict:
    if isinstance(error, dict):
        return error
    return {"code": None, "message": str(error)}
