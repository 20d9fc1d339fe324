from __future__ import annotations

from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from pymongo import ReturnDocument
from pymongo.collection import Collection

from ..database import Database
from ..logging_conf import get_logger
from ..models import DeleteResult


def get_database(request: Request) -> Database:
    return request.app.state.database


def _to_json(doc: dict[str, Any]) -> dict[str, Any]:
    out = dict(doc)
    out["id"] = str(out.pop("_id"))
    return out


def _object_id(doc_id: str) -> ObjectId:
    try:
        return ObjectId(doc_id)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")


def collection_router(name: str) -> APIRouter:
    """Build CRUD routes over one collection of opaque JSON documents.

    - 503 whenever the database is not connected or drops mid-request
    - 404 for ids that are malformed or absent
    """
    router = APIRouter()
    logger = get_logger(f"api.{name}")

    def get_collection(database: Database = Depends(get_database)) -> Collection:
        # DatabaseUnavailableError and driver errors are rendered as 503 by the app.
        return database.collection(name)

    @router.get("", summary=f"List {name}")
    def list_documents(
        skip: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=200),
        coll: Collection = Depends(get_collection),
    ) -> list[dict[str, Any]]:
        return [_to_json(d) for d in coll.find().skip(skip).limit(limit)]

    @router.get("/{doc_id}", summary=f"Get one of {name}")
    def get_document(doc_id: str, coll: Collection = Depends(get_collection)) -> dict[str, Any]:
        doc = coll.find_one({"_id": _object_id(doc_id)})
        if doc is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")
        return _to_json(doc)

    @router.post("", status_code=status.HTTP_201_CREATED, summary=f"Create one of {name}")
    def create_document(
        payload: dict[str, Any] = Body(...),
        coll: Collection = Depends(get_collection),
    ) -> dict[str, Any]:
        doc = {k: v for k, v in payload.items() if k not in ("_id", "id")}
        result = coll.insert_one(doc)
        logger.info(
            "document.created",
            extra={"event": "document_created", "collection": name, "id": str(result.inserted_id)},
        )
        return _to_json({**doc, "_id": result.inserted_id})

    @router.put("/{doc_id}", summary=f"Update one of {name}")
    def update_document(
        doc_id: str,
        payload: dict[str, Any] = Body(...),
        coll: Collection = Depends(get_collection),
    ) -> dict[str, Any]:
        changes = {k: v for k, v in payload.items() if k not in ("_id", "id")}
        doc = coll.find_one_and_update(
            {"_id": _object_id(doc_id)},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")
        return _to_json(doc)

    @router.delete("/{doc_id}", response_model=DeleteResult, summary=f"Delete one of {name}")
    def delete_document(doc_id: str, coll: Collection = Depends(get_collection)) -> DeleteResult:
        result = coll.delete_one({"_id": _object_id(doc_id)})
        if result.deleted_count == 0:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")
        logger.info(
            "document.deleted",
            extra={"event": "document_deleted", "collection": name, "id": doc_id},
        )
        return DeleteResult(id=doc_id, deleted=True)

    return router
