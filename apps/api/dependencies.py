"""
FastAPI dependencies for the process-scoped classification services

The services are built once in the application lifespan and kept on
`app.state`; routers receive them through these providers.
"""
from fastapi import Request

from apps.api.tasks import ClassificationDispatcher
from packages.common.config import Settings
from packages.domain.classification.job_store import ClassificationJobStore
from packages.domain.classification.reference_index import ReferenceIndex


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_job_store(request: Request) -> ClassificationJobStore:
    return request.app.state.job_store


def get_reference_index(request: Request) -> ReferenceIndex:
    return request.app.state.reference_index


def get_dispatcher(request: Request) -> ClassificationDispatcher:
    return request.app.state.dispatcher
