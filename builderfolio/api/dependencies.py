"""
Builderfolio - FastAPI Dependencies
Dependency injection for API routes.

Provides:
- Database client, contract service and IPFS service from the app container
- Repository and service instances per request
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, HTTPException, Request, status

from builderfolio.chain.contract_service import ContractService
from builderfolio.config import Settings, get_settings
from builderfolio.database.client import Neo4jClient
from builderfolio.repositories.profile_repository import ProfileRepository
from builderfolio.repositories.support_repository import SupportRepository
from builderfolio.services.ipfs_service import IpfsService
from builderfolio.services.profile_service import ProfileService
from builderfolio.services.support_service import SupportService

if TYPE_CHECKING:
    from builderfolio.api.app import BuilderfolioApp


# =============================================================================
# Settings
# =============================================================================

def get_app_settings() -> Settings:
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


# =============================================================================
# App Container
# =============================================================================

def get_builderfolio_app(request: Request) -> BuilderfolioApp:
    """Get the BuilderfolioApp instance from app state."""
    if not hasattr(request.app.state, "builderfolio"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application not initialized",
        )
    container: BuilderfolioApp = request.app.state.builderfolio
    return container


async def get_db_client(request: Request) -> Neo4jClient:
    container = get_builderfolio_app(request)
    if not container.db_client:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not connected",
        )
    return container.db_client


async def get_contract_service(request: Request) -> ContractService:
    container = get_builderfolio_app(request)
    if not container.contract_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Contract service not initialized",
        )
    return container.contract_service


async def get_ipfs_service(request: Request) -> IpfsService:
    container = get_builderfolio_app(request)
    if not container.ipfs_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="IPFS service not initialized",
        )
    return container.ipfs_service


DbClientDep = Annotated[Neo4jClient, Depends(get_db_client)]
ContractServiceDep = Annotated[ContractService, Depends(get_contract_service)]
IpfsServiceDep = Annotated[IpfsService, Depends(get_ipfs_service)]


# =============================================================================
# Repositories
# =============================================================================

async def get_profile_repository(db: DbClientDep) -> ProfileRepository:
    return ProfileRepository(db)


async def get_support_repository(db: DbClientDep) -> SupportRepository:
    return SupportRepository(db)


ProfileRepoDep = Annotated[ProfileRepository, Depends(get_profile_repository)]
SupportRepoDep = Annotated[SupportRepository, Depends(get_support_repository)]


# =============================================================================
# Services
# =============================================================================

async def get_profile_service(
    profiles: ProfileRepoDep,
    contracts: ContractServiceDep,
    settings: SettingsDep,
) -> ProfileService:
    return ProfileService(
        profiles,
        contracts,
        trending_limit=settings.trending_limit,
        trending_concurrency=settings.trending_concurrency,
        chain_read_timeout_seconds=settings.chain_read_timeout_seconds,
    )


async def get_support_service(
    support_logs: SupportRepoDep,
    contracts: ContractServiceDep,
    ipfs: IpfsServiceDep,
) -> SupportService:
    return SupportService(support_logs, contracts, ipfs)


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]
SupportServiceDep = Annotated[SupportService, Depends(get_support_service)]


__all__ = [
    "SettingsDep",
    "DbClientDep",
    "ContractServiceDep",
    "IpfsServiceDep",
    "ProfileRepoDep",
    "SupportRepoDep",
    "ProfileServiceDep",
    "SupportServiceDep",
    "get_app_settings",
    "get_builderfolio_app",
    "get_db_client",
    "get_contract_service",
    "get_ipfs_service",
    "get_profile_repository",
    "get_support_repository",
    "get_profile_service",
    "get_support_service",
]
