"""Client repository - Database operations for client records"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Client
from ...shared.validators import normalize_email


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def get_client_by_id(db: Session, client_id: str) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id).first()

    @staticmethod
    def find_by_email(db: Session, email: str) -> list[Client]:
        """All records with this email, oldest first"""
        return (
            db.query(Client)
            .filter(Client.email == normalize_email(email))
            .order_by(Client.added_time.asc(), Client.id.asc())
            .all()
        )

    @staticmethod
    def search_clients(
        db: Session,
        search: Optional[str] = None,
        status: Optional[str] = None,
        centre: Optional[str] = None,
    ) -> list[Client]:
        """Search and filter clients"""
        query = db.query(Client)

        if status and status != "all":
            query = query.filter(Client.status == status)

        if centre:
            query = query.filter(Client.my_nearest_treatment_centre == centre)

        if search:
            search_term = f"%{search.strip().lower()}%"
            query = query.filter(
                (Client.first_name.ilike(search_term))
                | (Client.last_name.ilike(search_term))
                | (Client.email.ilike(search_term))
                | (Client.mobile.ilike(search_term))
            )

        return query.order_by(Client.added_time.desc()).all()

    @staticmethod
    def create_client(db: Session, **client_data) -> Client:
        client = Client(**client_data)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def bulk_create(db: Session, records: list[dict]) -> int:
        """Insert many client records in one commit"""
        db.add_all([Client(**record) for record in records])
        db.commit()
        return len(records)

    @staticmethod
    def update_client(db: Session, client: Client, **updates) -> Client:
        """Update a client with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(client, key):
                setattr(client, key, value)

        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def delete_client(db: Session, client: Client) -> None:
        db.delete(client)
        db.commit()
