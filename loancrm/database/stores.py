"""MongoDB-backed record stores.

Services talk to these classes only, passing ``Predicate`` objects for
queries and receiving plain pydantic records back. Every driver failure is
re-raised as ``StoreError``.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from beanie import PydanticObjectId
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from loancrm.core.errors import ConflictError, StoreError
from loancrm.database.models import Admin, Customer
from loancrm.database.predicates import MatchAll, Predicate
from loancrm.schemas.admin_schemas import AdminRecord
from loancrm.schemas.customer_schema import CustomerRecord

logger = logging.getLogger(__name__)

SortSpec = Sequence[Tuple[str, int]]


def _object_id(raw: str) -> Optional[PydanticObjectId]:
    if not raw or not ObjectId.is_valid(raw):
        return None
    return PydanticObjectId(raw)


def _dump(document) -> Dict[str, Any]:
    data = document.model_dump(by_alias=True, exclude={"id", "revision_id"})
    data["_id"] = str(document.id)
    return data


class CustomerStore:
    """Customer collection accessed through Beanie."""

    @staticmethod
    def _to_record(document: Customer) -> CustomerRecord:
        return CustomerRecord.model_validate(_dump(document))

    async def insert(self, data: Dict[str, Any]) -> CustomerRecord:
        try:
            document = Customer.model_validate(data)
            await document.insert()
            logger.debug("Customer saved with ID: %s", document.id)
            return self._to_record(document)
        except PyMongoError as e:
            logger.error("Customer insert failed: %s", e)
            raise StoreError("Failed to save customer", error=str(e)) from e

    async def get(self, customer_id: str) -> Optional[CustomerRecord]:
        document = await self._get_document(customer_id)
        return self._to_record(document) if document else None

    async def find_one(self, predicate: Predicate) -> Optional[CustomerRecord]:
        try:
            document = await Customer.find_one(predicate.to_mongo())
        except PyMongoError as e:
            logger.error("Customer lookup failed: %s", e)
            raise StoreError("Failed to query customers", error=str(e)) from e
        return self._to_record(document) if document else None

    async def find(
        self,
        predicate: Predicate = MatchAll(),
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[CustomerRecord]:
        try:
            query = Customer.find(predicate.to_mongo())
            if sort:
                query = query.sort(list(sort))
            if skip:
                query = query.skip(skip)
            if limit:
                query = query.limit(limit)
            documents = await query.to_list()
        except PyMongoError as e:
            logger.error("Customer query failed: %s", e)
            raise StoreError("Failed to query customers", error=str(e)) from e
        return [self._to_record(d) for d in documents]

    async def count(self, predicate: Predicate = MatchAll()) -> int:
        try:
            return await Customer.find(predicate.to_mongo()).count()
        except PyMongoError as e:
            logger.error("Customer count failed: %s", e)
            raise StoreError("Failed to count customers", error=str(e)) from e

    async def update(self, customer_id: str, changes: Dict[str, Any]) -> Optional[CustomerRecord]:
        document = await self._get_document(customer_id)
        if document is None:
            return None
        for key, value in changes.items():
            setattr(document, key, value)
        try:
            await document.save()
        except PyMongoError as e:
            logger.error("Customer update failed for %s: %s", customer_id, e)
            raise StoreError("Failed to update customer", error=str(e)) from e
        return self._to_record(document)

    async def delete(self, customer_id: str) -> bool:
        document = await self._get_document(customer_id)
        if document is None:
            return False
        try:
            await document.delete()
        except PyMongoError as e:
            logger.error("Customer delete failed for %s: %s", customer_id, e)
            raise StoreError("Failed to delete customer", error=str(e)) from e
        return True

    async def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        try:
            return await Customer.aggregate(pipeline).to_list()
        except PyMongoError as e:
            logger.error("Customer aggregation failed: %s", e)
            raise StoreError("Failed to aggregate customers", error=str(e)) from e

    async def _get_document(self, customer_id: str) -> Optional[Customer]:
        object_id = _object_id(customer_id)
        if object_id is None:
            logger.debug("Not a valid ObjectId: %r", customer_id)
            return None
        try:
            return await Customer.get(object_id)
        except PyMongoError as e:
            logger.error("Customer fetch failed for %s: %s", customer_id, e)
            raise StoreError("Failed to fetch customer", error=str(e)) from e


class AdminStore:
    """Admin collection accessed through Beanie."""

    @staticmethod
    def _to_record(document: Admin) -> AdminRecord:
        return AdminRecord.model_validate(_dump(document))

    async def insert(self, data: Dict[str, Any]) -> AdminRecord:
        try:
            document = Admin.model_validate(data)
            await document.insert()
            return self._to_record(document)
        except DuplicateKeyError as e:
            logger.warning("Admin insert rejected by unique index: %s", e)
            raise ConflictError("Admin already exists") from e
        except PyMongoError as e:
            logger.error("Admin insert failed: %s", e)
            raise StoreError("Failed to save admin", error=str(e)) from e

    async def get(self, admin_id: str) -> Optional[AdminRecord]:
        document = await self._get_document(admin_id)
        return self._to_record(document) if document else None

    async def get_by_email(self, email: str) -> Optional[AdminRecord]:
        try:
            document = await Admin.find_one(Admin.email == email)
        except PyMongoError as e:
            logger.error("Admin lookup failed: %s", e)
            raise StoreError("Failed to query admins", error=str(e)) from e
        return self._to_record(document) if document else None

    async def update(self, admin_id: str, changes: Dict[str, Any]) -> Optional[AdminRecord]:
        document = await self._get_document(admin_id)
        if document is None:
            return None
        for key, value in changes.items():
            setattr(document, key, value)
        try:
            await document.save()
        except PyMongoError as e:
            logger.error("Admin update failed for %s: %s", admin_id, e)
            raise StoreError("Failed to update admin", error=str(e)) from e
        return self._to_record(document)

    async def _get_document(self, admin_id: str) -> Optional[Admin]:
        object_id = _object_id(admin_id)
        if object_id is None:
            return None
        try:
            return await Admin.get(object_id)
        except PyMongoError as e:
            logger.error("Admin fetch failed for %s: %s", admin_id, e)
            raise StoreError("Failed to fetch admin", error=str(e)) from e
