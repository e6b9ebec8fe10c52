"""
FastAPI application exposing the aggregation proxy.
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .aggregator import MetricsAggregator
from .config import Settings
from .exceptions import GotNodesException
from .response_format import classify_error, error_response

logger = logging.getLogger(__name__)

router = APIRouter()


class EthLookupRequest(BaseModel):
    """Body of POST /api/eth; accepts the key names older dashboards send."""
    identifiers: Optional[Any] = None
    pubkeys: Optional[Any] = None
    validators: Optional[Any] = None
    includeSeries: bool = False
    includeBalanceSeries: bool = False
    window: str = "30d"

    def identifier_list(self) -> Any:
        for value in (self.identifiers, self.pubkeys, self.validators):
            if value is not None:
                return value
        return []

    def wants_series(self) -> bool:
        return self.includeSeries or self.includeBalanceSeries


class AvaxLookupRequest(BaseModel):
    """Body of POST /api/avax."""
    identifiers: Optional[Any] = None
    nodeIds: Optional[Any] = None

    def identifier_list(self) -> Any:
        if self.identifiers is not None:
            return self.identifiers
        return self.nodeIds if self.nodeIds is not None else []


def _split_csv(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def get_aggregator(request: Request) -> MetricsAggregator:
    return request.app.state.aggregator


@router.post("/eth")
def eth_lookup(body: Optional[EthLookupRequest] = None,
               aggregator: MetricsAggregator = Depends(get_aggregator)):
    body = body or EthLookupRequest()
    return aggregator.validator_lookup("ethereum", body.identifier_list(),
                                       include_series=body.wants_series(), window=body.window)


@router.get("/eth")
def eth_lookup_query(validators: Optional[str] = None, pubkeys: Optional[str] = None,
                     includeSeries: bool = False, window: str = "30d",
                     aggregator: MetricsAggregator = Depends(get_aggregator)):
    identifiers = _split_csv(pubkeys) or _split_csv(validators)
    return aggregator.validator_lookup("ethereum", identifiers, include_series=includeSeries, window=window)


@router.post("/avax")
def avax_lookup(body: Optional[AvaxLookupRequest] = None,
                aggregator: MetricsAggregator = Depends(get_aggregator)):
    body = body or AvaxLookupRequest()
    return aggregator.validator_lookup("avalanche", body.identifier_list())


@router.get("/avax")
def avax_lookup_query(nodeIds: Optional[str] = None,
                      aggregator: MetricsAggregator = Depends(get_aggregator)):
    return aggregator.validator_lookup("avalanche", _split_csv(nodeIds))


@router.get("/stats")
def chain_stats(chain: str = Query(""), aggregator: MetricsAggregator = Depends(get_aggregator)):
    return aggregator.chain_stats(chain).to_dict()


@router.get("/charts")
def chain_charts(chain: str = Query(""), aggregator: MetricsAggregator = Depends(get_aggregator)):
    return JSONResponse(aggregator.chain_charts(chain).to_dict(), headers={"Cache-Control": "no-store"})


@router.get("/llama")
def chain_tvl(chain: str = Query("Ethereum"), aggregator: MetricsAggregator = Depends(get_aggregator)):
    return aggregator.chain_tvl(chain)


async def _library_error(request: Request, exc: GotNodesException) -> JSONResponse:
    status, envelope = classify_error(exc)
    if status >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {status}: {exc}")
    return JSONResponse(status_code=status, content=envelope)


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', []))}: {error.get('msg')}" for error in exc.errors()
    )
    return JSONResponse(status_code=400, content=error_response("invalid_request", details or None))


async def _unexpected_error(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception(f"{request.method} {request.url.path} failed unexpectedly")
        return JSONResponse(status_code=500, content=error_response("internal_error", "unexpected server error"))


def create_app(settings: Optional[Settings] = None, aggregator: Optional[MetricsAggregator] = None) -> FastAPI:
    """Build the API; credentials are validated once here, not per request."""
    from . import __version__

    settings = settings or Settings.from_env()
    settings.validate()

    app = FastAPI(
        title="GotNodes API",
        description="Validator and chain-TVL metrics proxy for Ethereum and Avalanche",
        version=__version__,
    )
    app.state.settings = settings
    app.state.aggregator = aggregator or MetricsAggregator(settings)

    # Added before CORSMiddleware so it sits inside it
    app.middleware("http")(_unexpected_error)

    # Browser clients hold no credentials; everything is public
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        max_age=86400,
    )

    app.add_exception_handler(GotNodesException, _library_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.include_router(router, prefix="/api", tags=["metrics"])
    return app
