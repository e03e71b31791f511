"""
Rehab Platform FastAPI Integration

Registers a shared async client on the application and exposes it as a
dependency.

Usage:
    from fastapi import Depends, FastAPI
    from rehab_client import RehabAsyncClient
    from rehab_client.integrations.fastapi import RehabFastAPI, get_rehab_client

    app = FastAPI()
    RehabFastAPI(app, api_key="key_123", environment="staging")

    @app.get("/patients")
    async def patients(rehab: RehabAsyncClient = Depends(get_rehab_client)):
        page = await rehab.clients.list()
        return [c.full_name for c in page.data]
"""

import logging
from typing import Any, Optional

try:
    from fastapi import Request
    from fastapi.responses import JSONResponse
except ImportError as e:
    raise ImportError(
        "FastAPI is required. Install with: pip install rehab-client[fastapi]"
    ) from e

from ..client import RehabAsyncClient
from ..config import RehabConfig, create_config
from ..errors import RehabError
from . import error_payload, error_status

logger = logging.getLogger("rehab_client.fastapi")


class RehabFastAPI:
    """
    FastAPI integration for the Rehab Platform SDK.

    Creates one ``RehabAsyncClient`` for the app, stores it on
    ``app.state.rehab_client`` and closes it on shutdown.

    Args:
        app: FastAPI application instance
        config: SDK configuration; when omitted it is built from ``options``,
            or from REHAB_* environment variables if no options are given
        install_error_handler: Render escaping RehabErrors as JSON envelopes
        **options: Named RehabConfig fields
    """

    def __init__(
        self,
        app: Any,  # FastAPI
        config: Optional[RehabConfig] = None,
        install_error_handler: bool = True,
        **options: Any,
    ) -> None:
        if config is None:
            config = create_config(**options) if options else RehabConfig.from_env()
        self.config = config
        self.client = RehabAsyncClient(config)
        self.app = app

        app.state.rehab_client = self.client
        app.add_event_handler("shutdown", self._shutdown)
        if install_error_handler:
            app.add_exception_handler(RehabError, rehab_error_handler)

        logger.info(f"RehabFastAPI initialized (base_url={self.client.base_url})")

    async def _shutdown(self) -> None:
        await self.client.close()


def get_rehab_client(request: Request) -> RehabAsyncClient:
    """
    FastAPI dependency returning the app's shared client.

    Usage:
        @app.get("/programs/{program_id}")
        async def program(program_id: str, rehab=Depends(get_rehab_client)):
            return (await rehab.programs.get(program_id)).data
    """
    client = getattr(request.app.state, "rehab_client", None)
    if client is None:
        raise RuntimeError("RehabFastAPI not initialized. Call RehabFastAPI(app, ...) first.")
    return client


async def rehab_error_handler(request: Request, exc: RehabError) -> JSONResponse:
    """Exception handler turning RehabErrors into failure envelopes."""
    logger.warning(f"{request.method} {request.url.path} failed: {exc.kind.value}: {exc.message}")
    return JSONResponse(status_code=error_status(exc), content=error_payload(exc))
