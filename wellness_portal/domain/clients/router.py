"""Client router - FastAPI endpoints for client records"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import CurrentSession, require_permission
from ...database import get_db
from ...models import Client
from ...permissions import Permissions
from .schemas import ClientCreate, ClientImportResponse, ClientResponse, ClientUpdate
from .service import OPTIONAL_FIELDS, ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


def client_response(c: Client) -> ClientResponse:
    optional = {attr: getattr(c, column) for attr, column in OPTIONAL_FIELDS.items()}
    return ClientResponse(
        id=c.id,
        firstName=c.first_name,
        lastName=c.last_name,
        email=c.email,
        mobile=c.mobile,
        status=c.status,
        accountId=c.account_id,
        linkedAt=c.linked_at,
        userAccountCreated=c.user_account_created,
        addedTime=c.added_time,
        updatedAt=c.updated_at,
        **optional,
    )


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[ClientResponse])
async def list_clients(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    centre: Optional[str] = Query(None),
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_CLIENTS)),
    service: ClientService = Depends(get_client_service),
):
    """Search clients by name, email or mobile with optional status/centre filters"""
    return [client_response(c) for c in service.search_clients(search, status, centre)]


@router.post("", response_model=ClientResponse, status_code=201)
async def create_client(
    data: ClientCreate,
    session: CurrentSession = Depends(require_permission(Permissions.CREATE_CLIENT)),
    service: ClientService = Depends(get_client_service),
):
    return client_response(service.create_client(data, session))


@router.get("/export")
async def export_clients_csv(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    centre: Optional[str] = Query(None),
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_CLIENT_DETAILS)),
    service: ClientService = Depends(get_client_service),
):
    """Export clients as CSV with optional filters"""
    return service.export_clients_csv(search, status, centre)


# ============================================================================
# IMPORT
# ============================================================================


@router.get("/import/template")
async def download_import_template(
    session: CurrentSession = Depends(require_permission(Permissions.IMPORT_CLIENTS)),
    service: ClientService = Depends(get_client_service),
):
    return service.template_response()


@router.post("/import", response_model=ClientImportResponse)
async def import_clients(
    file: UploadFile = File(...),
    session: CurrentSession = Depends(require_permission(Permissions.IMPORT_CLIENTS)),
    service: ClientService = Depends(get_client_service),
):
    """Import client records from a CSV or JSON file"""
    logger.info(f"📥 Client import '{file.filename}' by {session.email}")
    content = await file.read()
    return service.import_clients(content, file.filename, file.content_type)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_CLIENT_DETAILS)),
    service: ClientService = Depends(get_client_service),
):
    return client_response(service.get_client(client_id))


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    data: ClientUpdate,
    session: CurrentSession = Depends(require_permission(Permissions.EDIT_CLIENT)),
    service: ClientService = Depends(get_client_service),
):
    return client_response(service.update_client(client_id, data))


@router.delete("/{client_id}")
async def delete_client(
    client_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.DELETE_CLIENT)),
    service: ClientService = Depends(get_client_service),
):
    return service.delete_client(client_id)
