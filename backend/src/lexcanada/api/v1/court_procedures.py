import logging
from typing import Type

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from lexcanada.api.v1.auth import require_user_role
from lexcanada.core.database import get_db
from lexcanada.core.response_utils import create_success_response, ResponseTimer
from lexcanada.models.user import User
from lexcanada.schemas import (
    ChecklistItemCreate,
    ChecklistItemResponse,
    ChecklistItemUpdate,
    CourtProcedureCategoryResponse,
    CourtProcedureDetail,
    CourtProcedureResponse,
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    ProcedureDocumentCreate,
    ProcedureDocumentResponse,
    ProcedureDocumentUpdate,
    ReminderCreate,
    ReminderResponse,
    ReminderUpdate,
    StandardResponse,
    UserCourtProcedureCreate,
    UserCourtProcedureDetail,
    UserCourtProcedureResponse,
    UserCourtProcedureUpdate,
)
from lexcanada.services.court_procedure_service import CourtProcedureService

logger = logging.getLogger(__name__)

router = APIRouter()


# Catalogue

@router.get("/categories", response_model=StandardResponse)
def list_categories(db: Session = Depends(get_db)):
    with ResponseTimer() as timer:
        categories = CourtProcedureService(db).list_categories()
        return create_success_response(
            data=[CourtProcedureCategoryResponse.model_validate(c) for c in categories],
            execution_time=timer.get_execution_time()
        )


@router.get("/categories/{slug}", response_model=StandardResponse)
def get_category(slug: str, db: Session = Depends(get_db)):
    with ResponseTimer() as timer:
        category = CourtProcedureService(db).get_category_by_slug(slug)
        return create_success_response(
            data=CourtProcedureCategoryResponse.model_validate(category),
            execution_time=timer.get_execution_time()
        )


@router.get("/categories/{category_id}/procedures", response_model=StandardResponse)
def list_procedures(category_id: int, db: Session = Depends(get_db)):
    with ResponseTimer() as timer:
        procedures = CourtProcedureService(db).list_procedures(category_id)
        return create_success_response(
            data=[CourtProcedureResponse.model_validate(p) for p in procedures],
            execution_time=timer.get_execution_time()
        )


@router.get("/procedures/{procedure_id}", response_model=StandardResponse)
def get_procedure(procedure_id: int, db: Session = Depends(get_db)):
    """A procedure with its steps in order."""
    with ResponseTimer() as timer:
        procedure = CourtProcedureService(db).get_procedure(procedure_id)
        return create_success_response(
            data=CourtProcedureDetail.model_validate(procedure),
            execution_time=timer.get_execution_time()
        )


# User procedures

@router.get("/user", response_model=StandardResponse)
def list_user_procedures(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        procedures = CourtProcedureService(db).list_user_procedures(current_user.id)
        return create_success_response(
            data=[UserCourtProcedureResponse.model_validate(p) for p in procedures],
            execution_time=timer.get_execution_time()
        )


@router.post("/user", response_model=StandardResponse, status_code=201)
def start_user_procedure(
    request: UserCourtProcedureCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Start tracking a court procedure at its first step."""
    with ResponseTimer() as timer:
        user_procedure = CourtProcedureService(db).start_procedure(current_user, request.model_dump())
        return create_success_response(
            data=UserCourtProcedureResponse.model_validate(user_procedure),
            status_code=201,
            execution_time=timer.get_execution_time()
        )


@router.get("/user/{user_procedure_id}", response_model=StandardResponse)
def get_user_procedure(
    user_procedure_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        user_procedure = CourtProcedureService(db).get_user_procedure(user_procedure_id, current_user)
        return create_success_response(
            data=UserCourtProcedureDetail.model_validate(user_procedure),
            execution_time=timer.get_execution_time()
        )


@router.patch("/user/{user_procedure_id}", response_model=StandardResponse)
def update_user_procedure(
    user_procedure_id: int,
    changes: UserCourtProcedureUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        user_procedure = CourtProcedureService(db).update_user_procedure(
            user_procedure_id, current_user, changes.model_dump(exclude_unset=True)
        )
        return create_success_response(
            data=UserCourtProcedureResponse.model_validate(user_procedure),
            execution_time=timer.get_execution_time()
        )


@router.delete("/user/{user_procedure_id}", status_code=204)
def delete_user_procedure(
    user_procedure_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    CourtProcedureService(db).delete_user_procedure(user_procedure_id, current_user)
    return Response(status_code=204)


@router.get("/user/{user_procedure_id}/reminders/upcoming", response_model=StandardResponse)
def upcoming_reminders(
    user_procedure_id: int,
    days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Open reminders due within the next ``days`` days."""
    with ResponseTimer() as timer:
        reminders = CourtProcedureService(db).upcoming_reminders(user_procedure_id, current_user, days)
        return create_success_response(
            data=[ReminderResponse.model_validate(r) for r in reminders],
            execution_time=timer.get_execution_time()
        )


# Notes, reminders, checklist items and documents share the same routes

def _register_item_routes(kind: str, item_param: str, create_schema: Type[BaseModel],
                          update_schema: Type[BaseModel], response_schema: Type[BaseModel]) -> None:
    collection_path = f"/user/{{user_procedure_id}}/{kind}"
    item_path = f"{collection_path}/{{item_id}}"

    def list_items(
        user_procedure_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_user_role)
    ):
        with ResponseTimer() as timer:
            items = CourtProcedureService(db).list_items(kind, user_procedure_id, current_user)
            return create_success_response(
                data=[response_schema.model_validate(item) for item in items],
                execution_time=timer.get_execution_time()
            )

    def create_item(
        user_procedure_id: int,
        request: create_schema,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_user_role)
    ):
        with ResponseTimer() as timer:
            item = CourtProcedureService(db).create_item(kind, user_procedure_id, current_user, request.model_dump())
            return create_success_response(
                data=response_schema.model_validate(item),
                status_code=201,
                execution_time=timer.get_execution_time()
            )

    def update_item(
        user_procedure_id: int,
        item_id: int,
        changes: update_schema,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_user_role)
    ):
        with ResponseTimer() as timer:
            item = CourtProcedureService(db).update_item(
                kind, user_procedure_id, item_id, current_user, changes.model_dump(exclude_unset=True)
            )
            return create_success_response(
                data=response_schema.model_validate(item),
                execution_time=timer.get_execution_time()
            )

    def delete_item(
        user_procedure_id: int,
        item_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_user_role)
    ):
        CourtProcedureService(db).delete_item(kind, user_procedure_id, item_id, current_user)
        return Response(status_code=204)

    router.add_api_route(collection_path, list_items, methods=["GET"], response_model=StandardResponse,
                         name=f"list_{kind}")
    router.add_api_route(collection_path, create_item, methods=["POST"], response_model=StandardResponse,
                         status_code=201, name=f"create_{item_param}")
    router.add_api_route(item_path, update_item, methods=["PATCH"], response_model=StandardResponse,
                         name=f"update_{item_param}")
    router.add_api_route(item_path, delete_item, methods=["DELETE"], status_code=204,
                         name=f"delete_{item_param}")


_register_item_routes("notes", "note", NoteCreate, NoteUpdate, NoteResponse)
_register_item_routes("reminders", "reminder", ReminderCreate, ReminderUpdate, ReminderResponse)
_register_item_routes("checklist", "checklist_item", ChecklistItemCreate, ChecklistItemUpdate, ChecklistItemResponse)
_register_item_routes("documents", "document", ProcedureDocumentCreate, ProcedureDocumentUpdate,
                      ProcedureDocumentResponse)
