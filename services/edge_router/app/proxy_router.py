# services/edge_router/app/proxy_router.py
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from .classifier import classify
from .config import RouterSettings
from .errors import BodyRewriteError, UpstreamError
from .registry import AssetCandidate, OriginRegistry
from .rewriter import decode_body, is_html, rewrite_html
from .verifier import is_asset_response

router = APIRouter()

PROVENANCE_HEADER = "x-proxy-origin"
PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

HOP_BY_HOP_HEADERS = (
    "host",
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    # httpx la recalcula a partir del cuerpo reenviado
    "content-length",
)

# httpx entrega el cuerpo ya descomprimido; estos headers dejarian de ser ciertos
DROPPED_RESPONSE_HEADERS = ("content-encoding", "transfer-encoding", "connection", "content-length")

_PATH_SAFE = "/:@!$&'()*+,;=~"
_QUERY_SAFE = _PATH_SAFE + "?%"


def _filter_request_headers(headers, authority: str) -> list:
    keep = [(k, v) for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS]
    keep.append(("host", authority))
    return keep


def _copy_response_headers(upstream: httpx.Response, response: Response) -> None:
    # multi_items conserva los set-cookie repetidos
    for k, v in upstream.headers.multi_items():
        if k.lower() in DROPPED_RESPONSE_HEADERS:
            continue
        response.headers.append(k, v)


def upstream_url(origin: str, path: str, query: str = "", keep_origin_path: bool = False) -> httpx.URL:
    """Re-basa ``path`` + query sobre el origen.

    Los CDN conservan el path de su origen (``https://cdn.jsdelivr.net/npm``)
    para que el prefijo local sea el inverso exacto de la reescritura HTML;
    los origenes de paginas solo aportan la autoridad.
    """
    base = httpx.URL(origin)
    if not path.startswith("/"):
        path = "/" + path
    if keep_origin_path:
        path = base.path.rstrip("/") + path
    url = base.copy_with(path=quote(path, safe=_PATH_SAFE))
    if query:
        url = url.copy_with(query=quote(query, safe=_QUERY_SAFE).encode("ascii"))
    return url


@dataclass
class AssetServed:
    upstream: httpx.Response
    provider: str


@dataclass
class FallThrough:
    reason: str


AssetResult = Union[AssetServed, FallThrough]


class EdgeProxy:
    """Clasifica, elige origen, reenvia y reescribe. Una instancia por proceso."""

    def __init__(
        self,
        settings: RouterSettings,
        client: httpx.AsyncClient,
        logger: Optional[logging.Logger] = None,
        record: Optional[Callable[[str, str], None]] = None,
    ):
        self.settings = settings
        self.registry = OriginRegistry(settings)
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self._record = record

    def _count(self, provider: str, path: str) -> None:
        if self._record is not None:
            self._record(provider, path)

    def _apply_policy(self, response: Response, provider: str) -> Response:
        response.headers[PROVENANCE_HEADER] = provider
        response.headers["cache-control"] = self.settings.cache_control
        return response

    async def fetch_asset(self, candidate: AssetCandidate, query: str, cid: str = "anon") -> AssetResult:
        try:
            target = upstream_url(candidate.origin, candidate.path, query, keep_origin_path=True)
            request = self.client.build_request(
                "GET",
                target,
                # pistas para una capa de cache en el transporte
                extensions={"cache_everything": True, "cache_ttl": self.settings.cache_ttl},
            )
            upstream = await self.client.send(request, stream=True)
        except httpx.InvalidURL as e:
            return FallThrough(f"invalid asset url: {e}")
        except httpx.HTTPError as e:
            return FallThrough(f"fetch failed: {e!r}")
        content_type = upstream.headers.get("content-type")
        if not is_asset_response(content_type):
            await upstream.aclose()
            return FallThrough(f"content-type {content_type!r} is not an asset")
        self.logger.info("asset served", extra={"cid": cid, "provider": candidate.provider, "target": str(target)})
        return AssetServed(upstream, candidate.provider)

    async def serve_asset(self, path: str, query: str, cid: str = "anon") -> Optional[Response]:
        classification = classify(path, self.registry.prefixes)
        for candidate in self.registry.resolve_asset_origins(path, classification):
            result = await self.fetch_asset(candidate, query, cid)
            if isinstance(result, FallThrough):
                self.logger.info(
                    "asset fall-through",
                    extra={"cid": cid, "provider": candidate.provider, "reason": result.reason},
                )
                continue
            upstream = result.upstream
            response = StreamingResponse(
                upstream.aiter_bytes(),
                status_code=upstream.status_code,
                background=BackgroundTask(upstream.aclose),
            )
            _copy_response_headers(upstream, response)
            self._count(result.provider, "asset")
            return self._apply_policy(response, result.provider)
        return None

    async def serve_page(self, request: Request, cid: str = "anon") -> Response:
        path = request.url.path
        page = self.registry.resolve_page_origin(path)
        body = None
        if request.method not in ("GET", "HEAD"):
            body = await request.body()
        try:
            target = upstream_url(page.origin, path, request.url.query)
            self.logger.info("proxying page", extra={"cid": cid, "provider": page.provider, "target": str(target)})
            upstream_request = self.client.build_request(
                request.method,
                target,
                headers=_filter_request_headers(request.headers, page.authority),
                content=body,
            )
            upstream = await self.client.send(upstream_request, stream=True)
        except httpx.InvalidURL as e:
            raise UpstreamError(f"{page.provider} invalid url: {e}", page.provider) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"{page.provider} unreachable: {e!r}", page.provider) from e

        # HEAD no trae cuerpo que reescribir; se pasa tal cual, sin content-length
        if request.method != "HEAD" and is_html(upstream.headers.get("content-type")):
            return await self._rewrite_page(upstream, page.provider, cid)

        response = StreamingResponse(
            upstream.aiter_bytes(),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        _copy_response_headers(upstream, response)
        self._count(page.provider, "page")
        return self._apply_policy(response, page.provider)

    async def _rewrite_page(self, upstream: httpx.Response, provider: str, cid: str) -> Response:
        encoding = upstream.charset_encoding or "utf-8"
        try:
            raw = await upstream.aread()
            html = decode_body(raw, encoding)
            content = rewrite_html(html, self.registry.origin_map()).encode(encoding)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{provider} body read failed: {e!r}", provider) from e
        except (UnicodeError, LookupError) as e:
            raise BodyRewriteError(f"{provider} html not rewritable: {e!r}", provider) from e
        finally:
            await upstream.aclose()
        self.logger.info("rewriting HTML", extra={"cid": cid, "provider": provider})
        response = Response(content=content, status_code=upstream.status_code)
        _copy_response_headers(upstream, response)
        self._count(provider, "html")
        return self._apply_policy(response, provider)

    async def handle(self, request: Request) -> Response:
        # lo fija el middleware de correlacion de main.py
        cid = getattr(request.state, "cid", "anon")
        response = await self.serve_asset(request.url.path, request.url.query, cid)
        if response is not None:
            return response
        return await self.serve_page(request, cid)


@router.api_route("/{path:path}", methods=PROXY_METHODS)
async def edge_proxy(path: str, request: Request):
    """
    Punto de entrada unico: todo lo que no es /_edge/* se resuelve contra
    los CDN o los origenes de paginas.
    """
    return await request.app.state.proxy.handle(request)
