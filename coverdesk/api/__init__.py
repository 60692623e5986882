"""Routes API / API routes."""

from fastapi import APIRouter

from coverdesk.api import (
    audit,
    claims,
    contract_types,
    contracts,
    items,
    maintenance,
    repair_orders,
    theft_claims,
    users,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(contract_types.router, prefix="/contract-types", tags=["contract-types"])
api_router.include_router(items.router, prefix="/items", tags=["items"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(contracts.router, prefix="/contracts", tags=["contracts"])
api_router.include_router(claims.router, prefix="/claims", tags=["claims"])
api_router.include_router(theft_claims.router, prefix="/theft-claims", tags=["theft-claims"])
api_router.include_router(repair_orders.router, prefix="/repair-orders", tags=["repair-orders"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
api_router.include_router(maintenance.router, prefix="/maintenance", tags=["maintenance"])
