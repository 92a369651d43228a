"""FastAPI dependencies resolving the handles built in the app lifespan."""

from fastapi import Request

from linkwise.core.db import DatabaseHandle
from linkwise.services.canonicalizer import Canonicalizer
from linkwise.services.enrichment import EnrichmentOrchestrator


def get_canonicalizer(request: Request) -> Canonicalizer:
    return request.app.state.canonicalizer


def get_enrichment(request: Request) -> EnrichmentOrchestrator:
    return request.app.state.enrichment


def get_db(request: Request) -> DatabaseHandle:
    return request.app.state.db
