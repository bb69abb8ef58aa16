from fastapi import APIRouter, Depends

from washdesk.clients.store import StoreClient
from washdesk.dependencies.services import get_store_client

router = APIRouter()


@router.get("/health")
def health(client: StoreClient = Depends(get_store_client)):
    return {"ok": True, "mode": "mock" if client.use_mock_data else "live"}
