"""Client service - Business logic for client records"""

import csv
import json
import logging
from datetime import datetime
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import CurrentSession
from ...config import DEFAULT_COUNTRY
from ...models import Client
from ...utils.sanitization import sanitize_text
from . import importer
from .repository import ClientRepository
from .schemas import ClientBase, ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)

# Request field -> Client column for the optional profile fields
OPTIONAL_FIELDS = {
    "gender": "gender",
    "dateOfBirth": "date_of_birth",
    "idNumber": "id_number",
    "passport": "passport",
    "country": "country",
    "address1": "address1",
    "address2": "address2",
    "suburb": "suburb",
    "cityTown": "city_town",
    "province": "province",
    "postalCode": "postal_code",
    "preferredMethodOfContact": "preferred_method_of_contact",
    "maritalStatus": "marital_status",
    "employmentStatus": "employment_status",
    "currentMedication": "current_medication",
    "chronicConditions": "chronic_conditions",
    "currentTreatments": "current_treatments",
    "allergies": "allergies",
    "reasonForTransformation": "reason_for_transformation",
    "howDidYouHear": "how_did_you_hear",
    "myNearestTreatmentCentre": "my_nearest_treatment_centre",
    "referrerName": "referrer_name",
    "notes": "notes",
}

EXPORT_HEADERS = ["ID"] + importer.TEMPLATE_HEADERS + ["Account Linked", "Added"]


def _optional_values(data: ClientBase) -> dict:
    values = {}
    for attr, column in OPTIONAL_FIELDS.items():
        value = getattr(data, attr)
        values[column] = sanitize_text(value) if isinstance(value, str) else value
    return values


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def search_clients(
        self, search: Optional[str] = None, status: Optional[str] = None, centre: Optional[str] = None
    ) -> list[Client]:
        return self.repo.search_clients(self.db, search, status, centre)

    def get_client(self, client_id: str) -> Client:
        client = self.repo.get_client_by_id(self.db, client_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def create_client(self, data: ClientCreate, session: CurrentSession) -> Client:
        """Create a client record ahead of (or without) a client account"""
        logger.info(f"📥 Creating client record by {session.email}")

        client_data = _optional_values(data)
        client_data.update(
            first_name=data.firstName.strip(),
            last_name=data.lastName.strip(),
            email=data.email,
            mobile=data.mobile,
            status=data.status,
        )
        client_data["country"] = client_data["country"] or DEFAULT_COUNTRY

        client = self.repo.create_client(self.db, **client_data)
        logger.info(f"✅ Client record created: {client.id}")
        return client

    def update_client(self, client_id: str, data: ClientUpdate) -> Client:
        client = self.get_client(client_id)

        updates = _optional_values(data)
        updates.update(
            first_name=data.firstName.strip() if data.firstName else None,
            last_name=data.lastName.strip() if data.lastName else None,
            email=data.email,
            mobile=data.mobile,
            status=data.status,
        )
        return self.repo.update_client(self.db, client, **updates)

    def delete_client(self, client_id: str) -> dict:
        client = self.get_client(client_id)
        if client.account_id:
            logger.warning(f"⚠️ Deleting client {client_id} linked to account {client.account_id}")
        self.repo.delete_client(self.db, client)
        return {"message": "Client deleted"}

    def import_clients(self, content: bytes, filename: Optional[str], content_type: Optional[str]) -> dict:
        """
        Import client records from a CSV or JSON upload.

        Valid rows are written in one commit; invalid rows are reported with
        their spreadsheet row numbers and never written.
        """
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="File must be UTF-8 encoded")

        is_json = (filename or "").lower().endswith(".json") or content_type == "application/json"
        if is_json:
            try:
                result = importer.parse_json(json.loads(text))
            except json.JSONDecodeError as e:
                raise HTTPException(status_code=400, detail=f"Invalid JSON: {e.msg}")
        else:
            result = importer.parse_csv(text)

        imported = 0
        if result.records:
            try:
                imported = self.repo.bulk_create(self.db, result.records)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Client import failed while writing: {str(e)}")
                raise HTTPException(status_code=500, detail="Failed to save imported clients")

        logger.info(f"✅ Client import finished: {imported} imported, {len(result.errors)} failed")
        return {"imported": imported, "failed": len(result.errors), "errors": result.errors}

    def template_response(self) -> StreamingResponse:
        return StreamingResponse(
            iter([importer.template_csv()]),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=client_import_template.csv"},
        )

    def export_clients_csv(
        self, search: Optional[str] = None, status: Optional[str] = None, centre: Optional[str] = None
    ) -> StreamingResponse:
        """Export clients as CSV using the import template columns"""
        clients = self.search_clients(search, status, centre)
        logger.info(f"📊 Exporting {len(clients)} clients")

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(EXPORT_HEADERS)
        for c in clients:
            writer.writerow(
                [
                    c.id, c.first_name, c.last_name, c.email, c.mobile, c.gender or "",
                    c.id_number or "", c.country or "", c.address1 or "", c.address2 or "",
                    c.suburb or "", c.city_town or "", c.province or "", c.postal_code or "",
                    c.preferred_method_of_contact or "", c.marital_status or "",
                    c.employment_status or "", c.current_medication or "",
                    c.chronic_conditions or "", c.current_treatments or "",
                    c.reason_for_transformation or "", c.how_did_you_hear or "",
                    c.my_nearest_treatment_centre or "", c.referrer_name or "", c.status,
                    "yes" if c.account_id else "no",
                    c.added_time.strftime("%Y-%m-%d %H:%M:%S") if c.added_time else "",
                ]
            )

        filename = f"clients_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )
