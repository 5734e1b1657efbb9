"""Read access to the service categories seeded by the migrations."""

from typing import List

from ..core.db import Database
from ..schemas.category import CategoryRead


class CategoryService:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def list_categories(self) -> List[CategoryRead]:
        with self.db.connection() as conn:
            rows = conn.execute("SELECT id, name, icon, description FROM categories ORDER BY name").fetchall()
        return [CategoryRead.model_validate(dict(row)) for row in rows]
