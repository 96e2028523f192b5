from fastapi import APIRouter

from filter_relay.api.endpoints import devices, diagnostics, generate, health

router = APIRouter()
router.include_router(health.router, tags=["health"])
router.include_router(generate.router, tags=["generate"])
router.include_router(devices.router, tags=["devices"])
router.include_router(diagnostics.router, tags=["diagnostics"])
