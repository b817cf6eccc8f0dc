"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends

from swapflow import __version__
from swapflow.api.routes.swap import get_chain_client
from swapflow.clients.base import ChainReadClient, ClientError
from swapflow.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "swapflow"}


@router.get("/health/detailed")
async def detailed_health(client: ChainReadClient = Depends(get_chain_client)):
    """Detailed health check: config plus RPC reachability.

    Degraded when the node is unreachable or serves a different chain than
    the router is deployed on.
    """
    settings = get_settings()

    rpc = {"reachable": False, "chain_id": None, "chain_matches": False}
    try:
        chain_id = await client.chain_id()
        rpc.update(
            reachable=True,
            chain_id=chain_id,
            chain_matches=chain_id == settings.expected_chain_id,
        )
    except ClientError as e:
        logger.warning(f"RPC health check failed: {e}")
        rpc["error"] = str(e)

    return {
        "status": "healthy" if rpc["chain_matches"] else "degraded",
        "service": "swapflow",
        "version": __version__,
        "rpc": rpc,
        "config": settings.get_safe_dict(),
    }
