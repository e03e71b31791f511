"""
Rehab Platform Python SDK - FastAPI Integration Example

A clinic dashboard backend that proxies patient and program data.

Run with: REHAB_API_KEY=... uvicorn fastapi_example:app --reload
Requires: pip install rehab-client[fastapi]
"""

from typing import List, Optional

from fastapi import Depends, FastAPI

from rehab_client import RehabAsyncClient, RehabConfig, aiter_pages
from rehab_client.integrations.fastapi import RehabFastAPI, get_rehab_client

app = FastAPI(
    title="Rehab Dashboard",
    description="Example FastAPI app backed by the Rehab Platform API",
)

# Reads REHAB_API_KEY, REHAB_ENVIRONMENT, ... from the environment
RehabFastAPI(app, config=RehabConfig.from_env(enable_logging=True))


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.get("/patients")
async def patients(
    status: Optional[str] = "active",
    rehab: RehabAsyncClient = Depends(get_rehab_client),
) -> List[dict]:
    """All patients with the given status, across every page."""
    result = []
    async for page in aiter_pages(rehab.clients.list, limit=100, status=status):
        result.extend({"id": c.id, "name": c.full_name} for c in page.data)
    return result


@app.get("/patients/{client_id}/programs")
async def patient_programs(client_id: str, rehab: RehabAsyncClient = Depends(get_rehab_client)):
    # NotFoundError from the API is rendered as a 404 failure envelope
    page = await rehab.clients.programs(client_id)
    return [
        {"id": p.id, "name": p.name, "status": p.status, "progress": p.progress}
        for p in page.data
    ]


@app.post("/programs/{program_id}/pause")
async def pause_program(program_id: str, rehab: RehabAsyncClient = Depends(get_rehab_client)):
    program = (await rehab.programs.set_status(program_id, "paused")).data
    return {"id": program.id, "status": program.status}
