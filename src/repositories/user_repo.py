"""Read side of the user directory."""

from typing import List, Optional

from sqlalchemy import insert, select, update

from models.user import Role, User
from repositories.postgres_repo import PostgresRepository, users_table


class UserRepository(PostgresRepository):
    """Lookups used by ticket assignment, rosters and availability."""

    def get(self, user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        with self.engine.connect() as conn:
            document = self.fetch_document(conn, users_table, user_id)
        return User.model_validate_json(document) if document else None

    def get_active_engineer(self, user_id: Optional[str]) -> Optional[User]:
        user = self.get(user_id)
        if user is None or not user.is_active or user.role != Role.ENGINEER:
            return None
        return user

    def list_active_engineers(self) -> List[User]:
        stmt = (
            select(users_table.c.document)
            .where(
                users_table.c.role == Role.ENGINEER.value,
                users_table.c.is_active.is_(True),
            )
            .order_by(users_table.c.name)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).scalars().all()
        return [User.model_validate_json(row) for row in rows]

    def put(self, user: User) -> None:
        """Insert or replace a user record."""
        values = {
            "name": user.name,
            "role": user.role.value,
            "is_active": user.is_active,
            "document": user.model_dump_json(),
        }
        with self.engine.begin() as conn:
            result = conn.execute(
                update(users_table).where(users_table.c.id == user.id).values(**values)
            )
            if result.rowcount == 0:
                conn.execute(insert(users_table).values(id=user.id, **values))
