from dataclasses import replace
from operator import attrgetter

from services.assets import check_size, generate_filename
from services.errors import AssetError, AssetErrorKind, RepositoryError
from services.results import Err, Ok


class InMemoryRepository:
    """Репозиторий в памяти; наружу всегда отдаются копии сущностей."""

    def __init__(self):
        self.rows = {}
        self.fail_insert = False
        self.fail_update = False
        self.fail_delete = False

    async def find(self, sort=None, **filters):
        rows = [row for row in self.rows.values()
                if all(getattr(row, name) == value for name, value in filters.items())]
        if sort:
            rows.sort(key=attrgetter(sort.lstrip("-")), reverse=sort.startswith("-"))
        return [replace(row) for row in rows]

    async def find_by_id(self, record_id):
        row = self.rows.get(record_id)
        return replace(row) if row else None

    async def find_by_field(self, field, value):
        for row in self.rows.values():
            if getattr(row, field) == value:
                return replace(row)
        return None

    async def insert(self, entity):
        if self.fail_insert:
            raise RepositoryError("DB error")
        self.rows[entity.id] = replace(entity)
        return replace(entity)

    async def update(self, record_id, **values):
        if self.fail_update:
            raise RepositoryError("DB error")
        row = self.rows.get(record_id)
        if row is None:
            return None
        for name, value in values.items():
            getattr(row, name)
            setattr(row, name, value)
        return replace(row)

    async def delete(self, record_id):
        if self.fail_delete:
            raise RepositoryError("DB error")
        return self.rows.pop(record_id, None) is not None


class FakeAssetStore:

    def __init__(self):
        self.files = {}
        self.fail_store = False
        self.fail_delete = False

    async def store(self, data, original_filename, max_size):
        checked = check_size(data, max_size)
        if isinstance(checked, Err):
            return checked
        if self.fail_store:
            return Err(AssetError(AssetErrorKind.WRITE_FAILURE, "File could not be saved"))
        filename = generate_filename(original_filename)
        self.files[filename] = data
        return Ok(filename)

    async def delete(self, filename):
        if self.fail_delete or filename not in self.files:
            return Err(AssetError(AssetErrorKind.DELETE_FAILURE, "File could not be deleted"))
        del self.files[filename]
        return Ok(None)
